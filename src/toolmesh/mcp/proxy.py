"""Development proxy endpoint rewriting."""

from urllib.parse import urljoin, urlsplit

LOCAL_HOSTNAMES = {"localhost", "127.0.0.1"}


def is_local_host(hostname: str | None) -> bool:
    """True for localhost, 127.0.0.1, 192.168.* and *.local hosts."""
    if not hostname:
        return False
    hostname = hostname.lower()
    return (
        hostname in LOCAL_HOSTNAMES
        or hostname.startswith("192.168.")
        or hostname.endswith(".local")
    )


def should_auto_proxy(origin: str | None, endpoint: str | None) -> bool:
    """Whether a server should be routed through the development proxy.

    Applies when the host application runs locally and the target is an
    https endpoint on a non-local host, which a browser-style client could
    not reach directly.
    """
    if not origin or not endpoint:
        return False
    if not is_local_host(urlsplit(origin).hostname):
        return False

    target = urlsplit(urljoin(origin, endpoint))
    return target.scheme == "https" and not is_local_host(target.hostname)


def proxy_endpoint(origin: str, endpoint: str, prefix: str = "/mcp-proxy") -> str:
    """Rewrite an https endpoint to ``{origin}{prefix}/{host[:port]}{path}``.

    Endpoints that are not absolute https URLs are returned unchanged; the
    proxy only forwards to https targets.
    """
    target = urlsplit(endpoint)
    if target.scheme != "https" or not target.netloc:
        return endpoint

    netloc = target.netloc.rsplit("@", 1)[-1]  # credentials are not forwarded
    rewritten = f"{origin.rstrip('/')}{prefix}/{netloc}{target.path}"
    if target.query:
        rewritten += f"?{target.query}"
    return rewritten

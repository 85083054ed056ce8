"""HTTP client module for oac_client.

Classes:
    :class:`RequestExecutor` -- blocking client backed by :class:`httpx.Client`
    that injects bearer tokens and re-authenticates once on ``401``.

Functions:
    :func:`format_response_body` -- render a response body for display.

Example::

    from oac_client.client import RequestExecutor

    with RequestExecutor(settings.instance_url, manager) as executor:
        text = executor.execute("GET", "/api/20210901/catalog")
"""

from oac_client.client.executor import RequestExecutor
from oac_client.client.response import NO_CONTENT_MESSAGE, format_response_body

__all__ = ["RequestExecutor", "format_response_body", "NO_CONTENT_MESSAGE"]

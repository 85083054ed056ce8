"""Response body normalisation.

:func:`format_response_body` turns the raw bytes of a successful API response
into the text the CLI prints. Bodies are classified by their first
non-whitespace character rather than by ``Content-Type``, because the API does
not label its responses reliably.
"""

from __future__ import annotations

import json
from typing import Union

from oac_client.exceptions import FormatError

NO_CONTENT_MESSAGE = "Request succeeded (no content)."


def format_response_body(content: Union[bytes, str]) -> str:
    """Render a response body for display.

    * empty or whitespace-only -- :data:`NO_CONTENT_MESSAGE`
    * starts with ``{`` or ``[`` -- parsed and re-serialised with a two-space
      indent
    * anything else -- the trimmed text, unchanged

    Args:
        content: Raw body bytes (decoded as UTF-8) or text.

    Returns:
        The display text.

    Raises:
        FormatError: If a body that starts like JSON fails to parse.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    text = content.strip()
    if not text:
        return NO_CONTENT_MESSAGE

    if text[0] in "{[":
        kind = "object" if text[0] == "{" else "array"
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FormatError(f"Response looks like a JSON {kind} but is malformed: {exc}") from exc
        except RecursionError as exc:
            raise FormatError(f"Response JSON {kind} is nested too deeply to format") from exc
        try:
            return json.dumps(parsed, indent=2, ensure_ascii=False)
        except RecursionError as exc:
            raise FormatError(f"Response JSON {kind} is nested too deeply to format") from exc

    return text

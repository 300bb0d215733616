"""URI parameter helpers for the library:// resources.

FastMCP hands template parameters to handlers as the raw strings taken
from the URI, so numeric identifiers need converting before they reach
the database layer.
"""

from urllib.parse import unquote

from fastmcp.exceptions import ResourceError


def parse_id(raw: str, entity: str) -> int:
    """Convert a URI path segment to a positive integer identifier.

    Raises:
        ResourceError: If the segment is not a positive integer
    """
    value = unquote(str(raw)).strip()
    try:
        parsed = int(value)
    except ValueError:
        raise ResourceError(f"Invalid {entity} id in URI: {value!r}") from None

    if parsed < 1:
        raise ResourceError(f"Invalid {entity} id in URI: {parsed}")
    return parsed

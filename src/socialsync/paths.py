"""
Path dialects of the tabular-data API.

Metadata endpoints nest the base id one level deeper than data endpoints:

    meta/bases/tables  ->  meta/bases/{base_id}/tables
    Brands             ->  {base_id}/Brands
"""

META_PREFIX = "meta/bases/"


def resolve_path(path: str, resource_id: str) -> str:
    """Insert the resource id where the path's dialect expects it."""
    if path.startswith(META_PREFIX):
        return f"{META_PREFIX}{resource_id}/{path[len(META_PREFIX):]}"
    return f"{resource_id}/{path}"


def build_upstream_url(api_url: str, path: str) -> str:
    """Append a path to a fixed host+version prefix."""
    return f"{api_url.rstrip('/')}/{path.lstrip('/')}"

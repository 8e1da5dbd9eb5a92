"""Collection helpers."""

from typing import Any, Dict, List, TypeVar, Union, overload

T = TypeVar("T")


@overload
def drop_nulls(items: Dict[str, Any]) -> Dict[str, Any]: ...


@overload
def drop_nulls(items: List[T]) -> List[T]: ...


def drop_nulls(items: Union[Dict[str, Any], List[Any]]) -> Union[Dict[str, Any], List[Any]]:
    """Drop None entries from a list, or None values from a dict."""
    if isinstance(items, dict):
        return {key: value for key, value in items.items() if value is not None}
    return [item for item in items if item is not None]

"""Embedding byte codec: float vectors <-> little-endian IEEE-754 float32 bytes."""

import numbers
from collections.abc import Iterable

import numpy as np

from codemodeler.exceptions import InvalidArgumentError

_FLOAT32_LE = np.dtype("<f4")


def floats_to_bytes(values: Iterable[float] | None) -> bytes:
    """Pack values as consecutive 4-byte little-endian float32 values.

    Raises:
        InvalidArgumentError: values is None, a string, or holds something
            that is not a real number
    """
    if values is None:
        raise InvalidArgumentError("values must not be None")
    if isinstance(values, (str, bytes, bytearray)):
        raise InvalidArgumentError(f"values must be a sequence of numbers, got {type(values).__name__}")
    try:
        items = list(values)
    except TypeError as e:
        raise InvalidArgumentError(f"values must be iterable: {e}") from e
    for index, value in enumerate(items):
        if not isinstance(value, numbers.Real):
            raise InvalidArgumentError(f"values[{index}] is not a real number: {value!r}")
    array = np.asarray(items, dtype=_FLOAT32_LE)
    return array.tobytes()


def bytes_to_floats(data: bytes | None) -> list[float]:
    """Inverse of floats_to_bytes.

    Raises:
        InvalidArgumentError: data is None or its length is not a multiple of 4
    """
    if data is None:
        raise InvalidArgumentError("data must not be None")
    if len(data) % _FLOAT32_LE.itemsize:
        raise InvalidArgumentError(f"byte length {len(data)} is not a multiple of 4")
    return np.frombuffer(data, dtype=_FLOAT32_LE).tolist()

"""Tests for the float32 embedding codec."""

import struct

import numpy as np
import pytest

from codemodeler.analysis.codec import bytes_to_floats, floats_to_bytes
from codemodeler.exceptions import InvalidArgumentError


class TestFloatsToBytes:
    def test_little_endian_float32(self):
        assert floats_to_bytes([1.0, -2.5]) == struct.pack("<2f", 1.0, -2.5)

    def test_empty(self):
        assert floats_to_bytes([]) == b""

    def test_accepts_any_iterable(self):
        assert floats_to_bytes(x / 2 for x in range(3)) == struct.pack("<3f", 0.0, 0.5, 1.0)

    def test_none_rejected(self):
        with pytest.raises(InvalidArgumentError):
            floats_to_bytes(None)

    def test_non_numeric_rejected(self):
        with pytest.raises(InvalidArgumentError):
            floats_to_bytes(["abc"])

    def test_nested_rejected(self):
        with pytest.raises(InvalidArgumentError):
            floats_to_bytes([[1.0, 2.0]])

    @pytest.mark.parametrize("values", ["123", b"\x01\x02", ["1.5"], [1.0, None], [1.0, 2j]])
    def test_strings_and_non_real_values_rejected(self, values):
        with pytest.raises(InvalidArgumentError):
            floats_to_bytes(values)

    def test_not_iterable_rejected(self):
        with pytest.raises(InvalidArgumentError):
            floats_to_bytes(5)

    def test_integers_and_numpy_scalars_accepted(self):
        assert floats_to_bytes([1, np.float64(0.5)]) == struct.pack("<2f", 1.0, 0.5)


class TestBytesToFloats:
    def test_decodes(self):
        assert bytes_to_floats(struct.pack("<2f", 3.0, 0.25)) == [3.0, 0.25]

    def test_precision_is_float32(self):
        (value,) = bytes_to_floats(floats_to_bytes([0.1]))
        assert value == pytest.approx(0.1, rel=1e-7)
        assert value != 0.1

    def test_empty(self):
        assert bytes_to_floats(b"") == []

    def test_returns_python_floats(self):
        assert all(type(v) is float for v in bytes_to_floats(struct.pack("<2f", 1.0, 2.0)))

    @pytest.mark.parametrize("data", [b"\x00", b"\x00\x00\x00\x00\x00"])
    def test_length_must_be_multiple_of_four(self, data):
        with pytest.raises(InvalidArgumentError):
            bytes_to_floats(data)

    def test_none_rejected(self):
        with pytest.raises(InvalidArgumentError):
            bytes_to_floats(None)

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            bytes_to_floats(b"\x00")

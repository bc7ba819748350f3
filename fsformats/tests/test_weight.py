"""Test binary weight (paint) file IO"""

import struct
from io import BytesIO

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from ..errors import SizeMismatchError, ValidationError
from ..tmpdirs import InTemporaryDirectory
from ..weight import read_weight, write_weight


def test_write_read_weight():
    vertices = np.array([0, 7, 70000, 2**24 - 1])
    values = np.array([0.5, -1.0, 3.25, 0.0])
    with InTemporaryDirectory():
        write_weight('lh.test.w', vertices, values)
        v2, w2 = read_weight('lh.test.w')
        write_weight('lh.test.w.gz', vertices, values, latency=3)
        v3, w3 = read_weight('lh.test.w.gz')
    assert_array_equal(v2, vertices)
    assert_allclose(w2, values)
    assert_array_equal(v3, vertices)
    assert_allclose(w3, values)


def test_weight_layout():
    bio = BytesIO()
    write_weight(bio, [1, 256], [2.0, 0.5], latency=-2)
    raw = bio.getvalue()
    assert struct.unpack('>h', raw[:2]) == (-2,)
    assert raw[2:5] == b'\x00\x00\x02'
    assert raw[5:8] == b'\x00\x00\x01'
    assert struct.unpack('>f', raw[8:12]) == (2.0,)
    assert raw[12:15] == b'\x00\x01\x00'
    assert len(raw) == 5 + 2 * 7


def test_weight_errors():
    bio = BytesIO()
    write_weight(bio, [1, 2, 3], [1.0, 2.0, 3.0])
    with pytest.raises(SizeMismatchError) as excinfo:
        read_weight(BytesIO(bio.getvalue()[:-3]))
    assert excinfo.value.expected == 3
    assert excinfo.value.found == 2
    with pytest.raises(ValidationError):
        write_weight(BytesIO(), [1, 2], [1.0])
    with pytest.raises(ValidationError):
        write_weight(BytesIO(), [2**24], [1.0])
    with pytest.raises(ValidationError):
        write_weight(BytesIO(), [0.5], [1.0])

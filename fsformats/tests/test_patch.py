"""Test binary and ASCII patch IO"""

import struct
from io import BytesIO
from pathlib import Path

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from ..errors import FormatError, SizeMismatchError, ValidationError
from ..patch import Patch, read_patch, read_patch_asc, write_patch, write_patch_asc
from ..tmpdirs import InTemporaryDirectory

VERTICES = np.array([0, 3, 10, 11])
COORDS = np.array([[0.0, 1.0, 0.0], [1.5, 2.0, 0.0], [-3.0, 0.5, 0.0], [2.0, 2.0, 0.0]])
BORDER = np.array([False, True, False, True])


def test_write_read_patch():
    with InTemporaryDirectory():
        write_patch('lh.test.patch.flat', VERTICES, COORDS, BORDER)
        patch = read_patch('lh.test.patch.flat')
    assert isinstance(patch, Patch)
    assert_array_equal(patch.vertices, VERTICES)
    assert_allclose(patch.coords, COORDS)
    assert_array_equal(patch.border, BORDER)
    assert patch.faces is None


def test_patch_layout():
    bio = BytesIO()
    write_patch(bio, VERTICES[:2], COORDS[:2], BORDER[:2])
    raw = bio.getvalue()
    assert struct.unpack('>2i', raw[:8]) == (-1, 2)
    assert struct.unpack('>i3f', raw[8:24]) == (1, 0.0, 1.0, 0.0)
    assert struct.unpack('>i', raw[24:28]) == (-4,)
    assert len(raw) == 8 + 2 * 16


def test_legacy_patch():
    raw = struct.pack('>i', 2)
    raw += struct.pack('>i3f', -5, 1.0, 2.0, 3.0)
    raw += struct.pack('>i3f', 8, 4.0, 5.0, 6.0)
    patch = read_patch(BytesIO(raw))
    assert_array_equal(patch.vertices, [4, 7])
    assert_array_equal(patch.border, [True, False])
    assert_allclose(patch.coords, [[1, 2, 3], [4, 5, 6]])


def test_patch_errors():
    bio = BytesIO()
    write_patch(bio, VERTICES, COORDS)
    with pytest.raises(SizeMismatchError) as excinfo:
        read_patch(BytesIO(bio.getvalue()[:-4]))
    assert excinfo.value.expected == 4
    assert excinfo.value.found == 3
    zero_ind = struct.pack('>2i', -1, 1) + struct.pack('>i3f', 0, 1.0, 2.0, 3.0)
    with pytest.raises(FormatError, match='index 0'):
        read_patch(BytesIO(zero_ind))
    with pytest.raises(ValidationError):
        write_patch(BytesIO(), VERTICES, COORDS[:2])
    with pytest.raises(ValidationError):
        write_patch(BytesIO(), VERTICES, COORDS, BORDER[:2])
    with pytest.raises(ValidationError):
        write_patch(BytesIO(), [-1, 0, 1, 2], COORDS)


def test_write_read_patch_asc():
    faces = np.array([[1, 2, 3], [2, 4, 3]])
    with InTemporaryDirectory():
        write_patch_asc('lh.test.patch.asc', VERTICES, COORDS, BORDER, faces)
        lines = Path('lh.test.patch.asc').read_text().splitlines()
        patch = read_patch_asc('lh.test.patch.asc')
        write_patch_asc('lh.nofaces.asc', VERTICES, COORDS)
        patch2 = read_patch_asc('lh.nofaces.asc')
    assert lines[0].startswith('#!ascii')
    assert lines[1] == '4 2'
    assert lines[2] == 'vno=1'
    assert lines[4] == 'vno=-4'
    assert lines[10] == 'face=0'
    assert lines[11].split() == ['0', '1', '2']
    assert_array_equal(patch.vertices, VERTICES)
    assert_allclose(patch.coords, COORDS)
    assert_array_equal(patch.border, BORDER)
    assert_array_equal(patch.faces, faces)
    assert patch2.faces.shape == (0, 3)
    assert not patch2.border.any()


def test_patch_asc_errors():
    with InTemporaryDirectory():
        write_patch_asc('lh.test.patch.asc', VERTICES, COORDS)
        lines = Path('lh.test.patch.asc').read_text().splitlines()
        Path('short.asc').write_text('\n'.join(lines[:-2]) + '\n')
        with pytest.raises(SizeMismatchError):
            read_patch_asc('short.asc')
        Path('badtag.asc').write_text('\n'.join(lines).replace('vno=', 'vertex=') + '\n')
        with pytest.raises(FormatError, match='vno='):
            read_patch_asc('badtag.asc')
        with pytest.raises(ValidationError, match='1-based'):
            write_patch_asc('bad.asc', VERTICES, COORDS, faces=np.array([[0, 1, 2]]))

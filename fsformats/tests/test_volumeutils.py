# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the fsformats package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Test for volumeutils module"""

from io import BytesIO

import numpy as np
import pytest
from numpy.testing import assert_array_equal

from .. import imageglobals as igs
from ..errors import SizeMismatchError
from ..volumeutils import Recoder, array_from_file, array_to_file, seek_tell


def test_recoder():
    codes = ((1, 'one', 'uno'), (2, 'two', 'dos'))
    rc = Recoder(codes, ['code', 'label', 'spanish'])
    assert rc.code['one'] == 1
    assert rc.code['dos'] == 2
    assert rc.label[1] == 'one'
    assert rc.spanish['two'] == 'dos'
    assert rc[2] == 2
    with pytest.raises(KeyError):
        rc.code[3]
    assert 'uno' in rc
    assert 3 not in rc
    # unhashable keys are not in the recoder
    assert [1] not in rc
    assert rc.value_set() == {1, 2}
    assert rc.value_set('label') == {'one', 'two'}
    rc.add_codes(((3, 'three', 'tres'),))
    assert rc.label['tres'] == 'three'


def test_array_from_to_file():
    arr = np.arange(24, dtype=np.int16).reshape(2, 3, 4)
    for order in ('F', 'C'):
        bio = BytesIO()
        array_to_file(arr, bio, '>i2', offset=6, order=order)
        raw = bio.getvalue()
        assert raw[:6] == b'\x00' * 6
        assert len(raw) == 6 + arr.size * 2
        back = array_from_file(arr.shape, '>i2', bio, offset=6, order=order)
        assert_array_equal(back, arr)
        assert back.dtype == np.dtype('>i2')
    assert array_from_file((2, 0), '>f4', BytesIO()).shape == (2, 0)


def test_array_from_file_short():
    bio = BytesIO(np.arange(10, dtype='>f4').tobytes())
    with pytest.raises(SizeMismatchError) as excinfo:
        array_from_file((3, 4), '>f4', bio)
    assert (excinfo.value.expected, excinfo.value.found) == (12, 10)


def test_seek_tell():
    bio = BytesIO()
    bio.write(b'abc')
    seek_tell(bio, 3)
    assert bio.tell() == 3
    # forward gaps are filled with zeros
    seek_tell(bio, 8)
    assert bio.getvalue() == b'abc\x00\x00\x00\x00\x00'
    seek_tell(bio, 1)
    assert bio.tell() == 1


def test_errorlevel():
    orig_level = igs.error_level
    for level in (10, 20, 30):
        with igs.ErrorLevel(level):
            assert igs.error_level == level
        assert igs.error_level == orig_level

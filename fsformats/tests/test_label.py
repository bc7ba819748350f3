"""Test ASCII label IO"""

from pathlib import Path

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from ..errors import SizeMismatchError, ValidationError
from ..label import read_label, write_label
from ..tmpdirs import InTemporaryDirectory

LABEL_TEXT = """\
#!ascii label  , from subject fsaverage vox2ras=TkReg
3
12  -36.514  -19.453   18.413 0.000000
4  -33.107  -36.042   35.018 0.250000
99  -20.052  -5.631   62.811 1.000000
"""


def test_read_label():
    with InTemporaryDirectory():
        Path('lh.test.label').write_text(LABEL_TEXT)
        label = read_label('lh.test.label')
        label2, scalars = read_label('lh.test.label', True)
        label3, scalars3, coords = read_label(
            'lh.test.label', read_scalars=True, read_coords=True
        )
        label4, coords4 = read_label('lh.test.label', read_coords=True)
    assert_array_equal(label, [12, 4, 99])
    assert label.dtype.kind == 'i'
    assert_array_equal(label2, label)
    assert_allclose(scalars, [0, 0.25, 1])
    assert_allclose(coords[1], [-33.107, -36.042, 35.018])
    assert_array_equal(coords4, coords)


def test_write_read_label():
    vertices = np.array([5, 2, 17])
    values = np.array([0.5, 1.5, -2.0])
    coords = np.arange(9, dtype=float).reshape(3, 3)
    with InTemporaryDirectory():
        write_label('lh.out.label', vertices, values, coords, comment='my label')
        lines = Path('lh.out.label').read_text().splitlines()
        label, scalars, coords2 = read_label('lh.out.label', True, True)
        write_label('lh.default.label', vertices)
        default_lines = Path('lh.default.label').read_text().splitlines()
        _, scalars_default = read_label('lh.default.label', read_scalars=True)
    assert lines[0] == '#my label'
    assert lines[1] == '3'
    assert_array_equal(label, vertices)
    assert_allclose(scalars, values)
    assert_allclose(coords2, coords)
    assert default_lines[0].startswith('#!ascii label')
    assert_array_equal(scalars_default, [0, 0, 0])


def test_label_count_mismatch():
    with InTemporaryDirectory():
        Path('short.label').write_text(LABEL_TEXT.replace('\n3\n', '\n4\n'))
        with pytest.raises(SizeMismatchError) as excinfo:
            read_label('short.label')
    assert excinfo.value.expected == 4
    assert excinfo.value.found == 3


def test_duplicate_vertices():
    with InTemporaryDirectory():
        Path('dup.label').write_text(LABEL_TEXT.replace('\n4  ', '\n12  '))
        with pytest.warns(UserWarning, match='repeated vertex'):
            label = read_label('dup.label')
        assert_array_equal(label, [12, 12, 99])
        # volume labels use -1 for all entries
        Path('vol.label').write_text(
            '#volume label\n2\n-1 1.0 2.0 3.0 0.0\n-1 4.0 5.0 6.0 0.0\n'
        )
        assert_array_equal(read_label('vol.label'), [-1, -1])
        with pytest.raises(ValidationError, match='unique'):
            write_label('bad.label', [1, 1])
        with pytest.raises(ValidationError):
            write_label('bad.label', [1, 2], values=[1.0])
        with pytest.raises(ValidationError):
            write_label('bad.label', [1, 2], coords=np.zeros((2, 2)))

"""Test ASCII colortable IO and colortable checks"""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_array_equal

from ..colortable import (
    CTAB_COLUMNS,
    check_colortable,
    colortable_from_arrays,
    pack_color,
    read_colortable,
    unpack_color,
    write_colortable,
)
from ..errors import ColorCollisionError, FormatError, ValidationError
from ..tmpdirs import InTemporaryDirectory

LUT_TEXT = """\
#$Id: FreeSurferColorLUT.txt,v 1.70 2011/07/13 15:55:09 greve Exp $

#No. Label Name:                            R   G   B   A

0   Unknown                                 0   0   0   0
2   Left-Cerebral-White-Matter            245 245 245   0
3   Left-Cerebral-Cortex                  205  62  78   0   # trailing comment

41  Right-Cerebral-White-Matter             0 225   0   0
"""


def test_pack_unpack():
    rgba = np.array([[0, 0, 0, 0], [25, 5, 25, 0], [255, 255, 255, 255], [1, 2, 3, 128]])
    codes = pack_color(*rgba.T)
    assert codes.dtype == np.int32
    assert codes[1] == 1639705
    assert codes[2] == -1
    assert codes[3] < 0
    assert_array_equal(np.column_stack(unpack_color(codes)), rgba)


def test_read_colortable():
    with InTemporaryDirectory():
        Path('lut.txt').write_text(LUT_TEXT)
        ctab = read_colortable('lut.txt')
    assert tuple(ctab.columns) == CTAB_COLUMNS
    assert_array_equal(ctab['struct_index'], [0, 2, 3, 41])
    assert list(ctab['struct_name']) == [
        'Unknown',
        'Left-Cerebral-White-Matter',
        'Left-Cerebral-Cortex',
        'Right-Cerebral-White-Matter',
    ]
    assert ctab.loc[2, 'r'] == 205
    assert ctab.loc[3, 'code'] == 225 * 256


def test_write_read_colortable():
    ctab = colortable_from_arrays(
        ['Unknown', 'Left-Thalamus', 'ctx-lh-bankssts'],
        [[0, 0, 0, 0], [0, 118, 14, 0], [25, 100, 40, 0]],
        [0, 10, 1001],
    )
    with InTemporaryDirectory():
        write_colortable('out.txt', ctab)
        lines = Path('out.txt').read_text().splitlines()
        ctab2 = read_colortable('out.txt')
        write_colortable('out.txt.gz', ctab)
        ctab3 = read_colortable('out.txt.gz')
    assert lines[1].split() == ['10', 'Left-Thalamus', '0', '118', '14', '0']
    spaced = colortable_from_arrays(['Left Thalamus'], [[0, 118, 14, 0]])
    with InTemporaryDirectory():
        with pytest.raises(ValidationError):
            write_colortable('bad.txt', spaced)
        assert not Path('bad.txt').exists()
    pd.testing.assert_frame_equal(ctab2, ctab)
    pd.testing.assert_frame_equal(ctab3, ctab)


def test_read_colortable_errors():
    with InTemporaryDirectory():
        Path('dup.txt').write_text('0 a 1 2 3 0\n0 b 4 5 6 0\n')
        with pytest.raises(FormatError, match='Repeated struct indices'):
            read_colortable('dup.txt')
        Path('short.txt').write_text('0 a 1 2 3 0\n1 b 4 5\n')
        with pytest.raises(FormatError):
            read_colortable('short.txt')
        Path('empty.txt').write_text('# nothing here\n\n')
        ctab = read_colortable('empty.txt')
    assert len(ctab) == 0
    assert tuple(ctab.columns) == CTAB_COLUMNS


def test_check_colortable():
    ctab = colortable_from_arrays(['a', 'b'], [[1, 2, 3], [1, 2, 3]])
    # same colors are fine for a lookup table
    check_colortable(ctab)
    with pytest.raises(ColorCollisionError, match="'a', 'b'"):
        check_colortable(ctab, unique_colors=True)
    with pytest.raises(ValidationError, match='columns'):
        check_colortable(ctab.drop(columns=['a']))
    bad = ctab.copy()
    bad.loc[0, 'g'] = 256
    with pytest.raises(ValidationError, match='255'):
        check_colortable(bad)
    with pytest.raises(ValidationError, match='unique'):
        check_colortable(colortable_from_arrays(['a', 'b'], [[1, 2, 3], [4, 5, 6]], [7, 7]))
    for bad_name in ('Left Thalamus', '', 'ctx#1', ' '):
        with pytest.raises(ValidationError, match='names'):
            check_colortable(colortable_from_arrays(['a', bad_name], [[1, 2, 3], [4, 5, 6]]))
    with pytest.raises(ValidationError):
        colortable_from_arrays(['a'], [[1, 2]])
    with pytest.raises(ValidationError):
        colortable_from_arrays(['a', 'b'], [[1, 2, 3]])

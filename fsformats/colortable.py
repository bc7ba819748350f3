# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the fsformats package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""FreeSurfer colortables (color lookup tables, LUTs)

A colortable is held as a :class:`pandas.DataFrame` with one row per
structure and the columns ``struct_index``, ``struct_name``, ``r``, ``g``,
``b``, ``a`` and ``code``.  ``code`` is the annotation value of the
structure, ``r + g * 2**8 + b * 2**16 + a * 2**24`` wrapped to a signed 32
bit integer, as stored in ``.annot`` files.

The ASCII form (e.g. ``FreeSurferColorLUT.txt``) has one whitespace
separated ``index name r g b a`` row per structure; ``#`` starts a comment.

See https://surfer.nmr.mgh.harvard.edu/fswiki/FsTutorial/AnatomicalROI/FreeSurferColorLUT
"""

import io

import numpy as np
import pandas as pd

from .errors import ColorCollisionError, FormatError, ValidationError
from .imageglobals import logger
from .openers import Opener

CTAB_COLUMNS = ('struct_index', 'struct_name', 'r', 'g', 'b', 'a', 'code')
_RGBA = ['r', 'g', 'b', 'a']


def pack_color(r, g, b, a=0):
    """Pack color channels into annotation codes

    Computed in 64 bits, then wrapped into the signed 32 bit range.

    Examples
    --------
    >>> int(pack_color(25, 5, 25))
    1639705
    >>> int(pack_color(0, 0, 0, 255))
    -16777216
    """
    r, g, b, a = (np.asarray(c, dtype=np.int64) for c in (r, g, b, a))
    code = r + g * 2**8 + b * 2**16 + a * 2**24
    return ((code + 2**31) % 2**32 - 2**31).astype(np.int32)


def unpack_color(code):
    """Return ``(r, g, b, a)`` integer arrays for annotation codes `code`

    Examples
    --------
    >>> [int(c) for c in unpack_color(1639705)]
    [25, 5, 25, 0]
    """
    code = np.asarray(code, dtype=np.int64) & 0xFFFFFFFF
    return tuple((code >> shift) & 255 for shift in (0, 8, 16, 24))


def colortable_from_arrays(struct_names, rgba, struct_index=None):
    """Build a colortable DataFrame

    Parameters
    ----------
    struct_names : sequence of str
        Structure names
    rgba : array-like, shape (n, 3) or (n, 4)
        Colors, 0-255.  Alpha is 0 if not given.
    struct_index : None or sequence of int, optional
        Structure indices; default ``0 .. n-1``

    Returns
    -------
    ctab : DataFrame
        With codes computed from the colors.
    """
    names = [n.decode() if isinstance(n, bytes) else str(n) for n in struct_names]
    rgba = np.asarray(rgba, dtype=np.int64)
    if rgba.ndim != 2 or rgba.shape[1] not in (3, 4):
        raise ValidationError(f'Colors must have shape (n, 3) or (n, 4); got {rgba.shape}')
    if rgba.shape[1] == 3:
        rgba = np.column_stack((rgba, np.zeros(len(rgba), dtype=np.int64)))
    if struct_index is None:
        struct_index = np.arange(len(names))
    struct_index = np.asarray(struct_index, dtype=np.int64)
    if not len(names) == len(rgba) == len(struct_index):
        raise ValidationError(
            f'Got {len(names)} names, {len(rgba)} colors and {len(struct_index)} indices'
        )
    ctab = pd.DataFrame(
        {
            'struct_index': struct_index,
            'struct_name': names,
            'r': rgba[:, 0],
            'g': rgba[:, 1],
            'b': rgba[:, 2],
            'a': rgba[:, 3],
        }
    )
    return with_codes(ctab)


def with_codes(ctab):
    """Return copy of `ctab` with the ``code`` column computed from the colors"""
    ctab = ctab.copy()
    ctab['code'] = pack_color(*(ctab[c].to_numpy() for c in _RGBA))
    return ctab.loc[:, list(CTAB_COLUMNS)].reset_index(drop=True)


def check_colortable(ctab, unique_colors=False):
    """Check colortable `ctab` can be written

    Parameters
    ----------
    ctab : DataFrame
        Must have columns ``struct_index``, ``struct_name``, ``r``, ``g``,
        ``b``, ``a``.  A ``code`` column, if present, is ignored.
    unique_colors : bool, optional
        Whether to require that no two structures pack to the same code, as
        needed for annotations.

    Raises
    ------
    ValidationError
        Missing columns, duplicate struct indices, empty struct names or
        names holding whitespace or ``#``, colors outside 0-255.
    ColorCollisionError
        Two structures with the same code when `unique_colors` is True.
    """
    missing = [c for c in CTAB_COLUMNS[:-1] if c not in ctab.columns]
    if missing:
        raise ValidationError(f'Colortable lacks columns {missing}')
    dupes = ctab['struct_index'][ctab['struct_index'].duplicated()]
    if len(dupes):
        raise ValidationError(
            f'Colortable struct indices must be unique; repeated: {sorted(set(dupes))}'
        )
    names = [str(name) for name in ctab['struct_name']]
    bad_names = [n for n in names if not n or len(n.split()) != 1 or '#' in n]
    if bad_names:
        raise ValidationError(
            f"Colortable struct names must be non-empty words without '#'; got {bad_names}"
        )
    rgba = ctab[_RGBA].to_numpy()
    if rgba.size and (rgba.min() < 0 or rgba.max() > 255):
        raise ValidationError('Colortable color channels must be in [0, 255]')
    if unique_colors:
        check_unique_codes(with_codes(ctab))


def check_unique_codes(ctab):
    """Raise :class:`ColorCollisionError` if two rows of `ctab` share a code"""
    codes = ctab['code'].astype(np.int64)
    collide = codes.duplicated(keep=False).to_numpy()
    if collide.any():
        raise ColorCollisionError(
            'Colortable entries must have unique colors, but structures '
            f'{list(ctab["struct_name"][collide])} share codes '
            f'{sorted(int(c) for c in set(codes[collide]))}'
        )


def read_colortable(filepath):
    """Read ASCII colortable (LUT) file

    Parameters
    ----------
    filepath : str or file-like
        Path to LUT file.  Files ending in ``.gz`` are decompressed.

    Returns
    -------
    ctab : DataFrame
        Columns ``struct_index, struct_name, r, g, b, a, code``, rows in file
        order.

    Raises
    ------
    FormatError
        For rows that do not hold ``index name r g b a``, or repeated
        struct indices.
    """
    with Opener(filepath, 'rb') as fobj:
        text = fobj.read().decode('utf-8')
    if not any(line.split('#', 1)[0].strip() for line in text.splitlines()):
        logger.debug('Colortable %s holds no entries', filepath)
        return colortable_from_arrays([], np.zeros((0, 4)))
    try:
        dat = pd.read_csv(
            io.StringIO(text),
            comment='#',
            sep=r'\s+',
            header=None,
            names=list(CTAB_COLUMNS[:-1]),
            usecols=range(6),
            dtype={'struct_name': str},
        )
    except (ValueError, pd.errors.ParserError) as err:
        raise FormatError(f'Invalid colortable file {filepath!r}: {err}') from None
    numeric = dat[['struct_index'] + _RGBA]
    if numeric.isna().to_numpy().any():
        raise FormatError(
            f'Colortable rows in {filepath!r} must have 6 fields: index name r g b a'
        )
    try:
        numeric = numeric.astype(np.int64)
    except (ValueError, TypeError):
        raise FormatError(f'Non-integer index or color value in {filepath!r}') from None
    dupes = numeric['struct_index'][numeric['struct_index'].duplicated()]
    if len(dupes):
        raise FormatError(
            f'Repeated struct indices {sorted(set(dupes))} in colortable {filepath!r}'
        )
    logger.debug('Read %d colortable entries from %s', len(dat), filepath)
    return colortable_from_arrays(
        dat['struct_name'].to_numpy(),
        numeric[_RGBA].to_numpy(),
        numeric['struct_index'].to_numpy(),
    )


def write_colortable(filepath, ctab):
    """Write colortable DataFrame `ctab` as an ASCII LUT

    One ``index name r g b a`` row per structure, in the order of `ctab`.
    """
    check_colortable(ctab)
    lines = [
        f'{row.struct_index:<4d} {row.struct_name:<40s} '
        f'{row.r:3d} {row.g:3d} {row.b:3d} {row.a:3d}'
        for row in ctab.astype({c: int for c in ['struct_index'] + _RGBA}).itertuples()
    ]
    with Opener(filepath, 'wb') as fobj:
        fobj.write(''.join(line + '\n' for line in lines).encode())

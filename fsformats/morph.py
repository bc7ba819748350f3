"""Read / write FreeSurfer morphometry ("curv") files

Covers the new curv format (``?h.thickness``, ``?h.curv`` ...), the old
format with 2-byte fixed point values, and per-vertex data stored as
MGH / MGZ volumes of shape ``(N, 1, 1)``.

See also:
http://www.grahamwideman.com/gw/brain/fs/surfacefileformats.htm#CurvNew
"""

import os
from os.path import splitext

import numpy as np

from .errors import FormatError, ValidationError
from .imageglobals import logger
from .mghformat import read_mgh, write_mgh
from .openers import Opener
from .primitives import fread3, fwrite3, read_be, write_be

NEW_CURV_MAGIC = 16777215


def read_morph_data(filepath):
    """Read a Freesurfer morphometry data file.

    This function reads in what Freesurfer internally calls "curv" file types,
    (e.g. ?h. curv, ?h.thickness), but as that has the potential to cause
    confusion where "curv" also refers to the surface curvature values,
    we refer to these files as "morphometry" files.

    Parameters
    ----------
    filepath : str or file-like
        Path to morphometry file.  Files ending in ``.gz`` are decompressed.

    Returns
    -------
    curv : numpy array
        Vector representation of surface morpometry values
    """
    with Opener(filepath, 'rb') as fobj:
        magic = fread3(fobj)
        if magic == NEW_CURV_MAGIC:
            vnum, _, vals_per_vertex = read_be(fobj, '>i4', 3, 'curv header values')
            if vals_per_vertex != 1:
                raise FormatError(
                    f'Only 1 value per vertex is supported in curv files; '
                    f'{filepath!r} declares {vals_per_vertex}'
                )
            logger.debug('Reading new format curv %s: %d values', filepath, vnum)
            curv = read_be(fobj, '>f4', vnum, 'morphometry values')
        else:
            # Old format; the magic is the vertex count
            vnum = magic
            fread3(fobj)  # face count
            logger.debug('Reading old format curv %s: %d values', filepath, vnum)
            curv = read_be(fobj, '>i2', vnum, 'morphometry values') / 100
    return curv


def write_morph_data(file_like, values, fnum=0):
    """Write Freesurfer morphometry data `values` to file-like `file_like`

    Equivalent to FreeSurfer's `write_curv.m`_

    .. _write_curv.m: \
    https://github.com/neurodebian/freesurfer/blob/debian-sloppy/matlab/write_curv.m

    Parameters
    ----------
    file_like : file-like
        String containing path of file to be written, or file-like object, open
        in binary write (`'wb'` mode, implementing the `write` method)
    values : array-like
        Surface morphometry values.  Shape must be (N,), (N, 1), (1, N) or (N,
        1, 1)
    fnum : int, optional
        Number of faces in the associated surface.
    """
    vector = np.asarray(values)
    vnum = int(np.prod(vector.shape))
    if vector.shape not in ((vnum,), (vnum, 1), (1, vnum), (vnum, 1, 1)):
        raise ValidationError(
            f'Invalid shape {vector.shape}: argument values must be a vector'
        )

    i4info = np.iinfo('i4')
    if vnum > i4info.max:
        raise ValidationError('Too many values for morphometry file')
    if not i4info.min <= fnum <= i4info.max:
        raise ValidationError(f'Argument fnum must be between {i4info.min} and {i4info.max}')

    with Opener(file_like, 'wb') as fobj:
        fwrite3(fobj, NEW_CURV_MAGIC)
        # vertex count, face count (unused), vals per vertex (only 1 supported)
        write_be(fobj, [vnum, fnum, 1], '>i4')
        write_be(fobj, vector.ravel(), '>f4')


def _morph_format(filepath, format):
    if format not in ('auto', 'curv', 'mgh', 'mgz'):
        raise ValidationError(
            f"format must be one of 'auto', 'curv', 'mgh', 'mgz'; got {format!r}"
        )
    if format != 'auto':
        return format
    if not isinstance(filepath, (str, os.PathLike)):
        return 'curv'
    ext = splitext(os.fspath(filepath))[1].lower()
    return {'.mgh': 'mgh', '.mgz': 'mgz'}.get(ext, 'curv')


def read_morph(filepath, format='auto'):
    """Read per-vertex data from a curv or MGH / MGZ file

    With ``format='auto'``, the ``.mgh`` and ``.mgz`` suffixes select MGH,
    anything else curv.  MGH data is flattened to a vector.
    """
    if _morph_format(filepath, format) == 'curv':
        return read_morph_data(filepath)
    return np.asarray(read_mgh(filepath).dataobj).ravel(order='F')


def write_morph(filepath, values, format='auto'):
    """Write per-vertex data to a curv or MGH / MGZ file

    MGH output holds a float32 volume of shape ``(N, 1, 1)``.  Returns the
    format written (``'curv'``, ``'mgh'`` or ``'mgz'``).
    """
    fmt = _morph_format(filepath, format)
    if fmt == 'curv':
        write_morph_data(filepath, values)
    else:
        vector = np.asarray(values).ravel()
        write_mgh(filepath, vector.reshape((-1, 1, 1)), dtype=np.float32)
    return fmt

"""Read / write FreeSurfer binary weight (paint, ``.w``) files

Layout: latency (int16), vertex count (3 bytes), then per vertex a 3 byte
vertex number and a float32 value.  All big-endian.
"""

import numpy as np

from .errors import SizeMismatchError, ValidationError
from .imageglobals import logger
from .openers import Opener
from .primitives import MAX_UINT24, fread3, fwrite3, read_i16, write_be

# 3 byte vertex number, float32 value
_WEIGHT_DT = np.dtype([('vno', 'u1', (3,)), ('value', '>f4')])


def read_weight(filepath):
    """Read a FreeSurfer weight file

    Parameters
    ----------
    filepath : str or file-like
        Path to weight file.  Files ending in ``.gz`` are decompressed.

    Returns
    -------
    vertices : ndarray of int
        0-based vertex numbers.
    values : ndarray of float
        Value at each vertex.
    """
    with Opener(filepath, 'rb') as fobj:
        latency = read_i16(fobj, 'latency')
        count = fread3(fobj)
        logger.debug('Reading weight file %s: %d values, latency %d', filepath, count, latency)
        n_bytes = count * _WEIGHT_DT.itemsize
        raw = fobj.read(n_bytes)
    if len(raw) != n_bytes:
        raise SizeMismatchError(
            'weight entries', count, len(raw) // _WEIGHT_DT.itemsize, filepath
        )
    entries = np.frombuffer(raw, dtype=_WEIGHT_DT, count=count)
    vno_bytes = entries['vno'].astype(np.int64)
    vertices = (vno_bytes[:, 0] << 16) + (vno_bytes[:, 1] << 8) + vno_bytes[:, 2]
    return vertices, entries['value'].astype(np.float64)


def write_weight(filepath, vertices, values, latency=0):
    """Write a FreeSurfer weight file

    Parameters
    ----------
    filepath : str or file-like
        Path to weight file.  Paths ending in ``.gz`` are gzip compressed.
    vertices : array-like of int
        0-based vertex numbers, each below 2**24.
    values : array-like of float
        Value at each vertex.
    latency : int, optional
        Stored in the header; unused by FreeSurfer.
    """
    vertices = np.asarray(vertices)
    values = np.asarray(values, dtype=float)
    if vertices.ndim != 1 or not np.issubdtype(vertices.dtype, np.integer):
        raise ValidationError('Weight vertices must be a 1D integer array')
    if values.shape != vertices.shape:
        raise ValidationError(
            f'Got {len(vertices)} vertices but values of shape {values.shape}'
        )
    if len(vertices) and (vertices.min() < 0 or vertices.max() > MAX_UINT24):
        raise ValidationError(f'Weight vertex numbers must be in [0, {MAX_UINT24}]')
    if not np.iinfo('i2').min <= latency <= np.iinfo('i2').max:
        raise ValidationError(f'Latency {latency} does not fit in 2 bytes')

    entries = np.zeros(len(vertices), dtype=_WEIGHT_DT)
    vertices = vertices.astype(np.int64)
    for i, shift in enumerate((16, 8, 0)):
        entries['vno'][:, i] = (vertices >> shift) & 255
    entries['value'] = values
    with Opener(filepath, 'wb') as fobj:
        write_be(fobj, [latency], '>i2')
        fwrite3(fobj, len(vertices))
        fobj.write(entries.tobytes())

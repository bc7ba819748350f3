"""Read / write FreeSurfer surface patches (``?h.*.patch.3d``, ``.flat``)

A patch is a subset of the vertices of a surface with new coordinates,
e.g. a flattened cortex.  Each vertex carries its 0-based number in the
full surface and a border flag.  On disk the vertex number ``vno`` is
stored as ``vno + 1`` for interior vertices and ``-(vno + 1)`` for border
vertices.

Binary layout (big-endian): a -1 marker, the number of points (int32) and
per point the signed index (int32) and x, y, z (float32).  Files without
the marker start with the number of points directly.

The ASCII layout has a comment line, a ``npts nfaces`` line, two lines per
point (``vno=<signed index>``, then ``x y z``) and two lines per face
(``face=<k>``, then the three 0-based vertex indices).
"""

import typing as ty

import numpy as np

from .errors import FormatError, SizeMismatchError, ValidationError
from .imageglobals import logger
from .openers import Opener
from .primitives import read_i32, write_be

PATCH_MARKER = -1
ASCII_PATCH_COMMENT = '#!ascii version of patch'

_PATCH_DT = np.dtype([('ind', '>i4'), ('xyz', '>f4', (3,))])


class Patch(ty.NamedTuple):
    """Patch vertices with coordinates

    ``vertices`` are 0-based vertex numbers in the full surface, ``border``
    flags border vertices, ``faces`` is a 1-based ``(n, 3)`` array or None
    when the file holds no faces.
    """

    vertices: np.ndarray
    coords: np.ndarray
    border: np.ndarray
    faces: ty.Optional[np.ndarray] = None


def _decode_indices(ind, filepath):
    ind = np.asarray(ind, dtype=np.int64)
    if np.any(ind == 0):
        raise FormatError(f'Patch vertex index 0 is invalid in {filepath!r}')
    border = ind < 0
    return np.abs(ind) - 1, border


def _encode_indices(vertices, coords, border):
    vertices = np.asarray(vertices)
    coords = np.asarray(coords, dtype=float)
    if vertices.ndim != 1 or not np.issubdtype(vertices.dtype, np.integer):
        raise ValidationError('Patch vertices must be a 1D integer array')
    if coords.shape != (len(vertices), 3):
        raise ValidationError(
            f'Expected patch coordinates of shape ({len(vertices)}, 3); got {coords.shape}'
        )
    if len(vertices) and (vertices.min() < 0 or vertices.max() >= np.iinfo('i4').max):
        raise ValidationError('Patch vertex numbers must be non-negative int32 values')
    if border is None:
        border = np.zeros(len(vertices), dtype=bool)
    border = np.asarray(border, dtype=bool)
    if border.shape != vertices.shape:
        raise ValidationError(
            f'Got {len(vertices)} vertices but border flags of shape {border.shape}'
        )
    ind = vertices.astype(np.int64) + 1
    ind[border] *= -1
    return ind, coords


def read_patch(filepath):
    """Read binary FreeSurfer patch file

    Parameters
    ----------
    filepath : str or file-like
        Path to patch file.  Files ending in ``.gz`` are decompressed.

    Returns
    -------
    patch : Patch
        With ``faces`` None.
    """
    with Opener(filepath, 'rb') as fobj:
        first = read_i32(fobj, 'patch marker')
        if first == PATCH_MARKER:
            npts = read_i32(fobj, 'patch point count')
        else:
            # legacy layout without marker
            npts = first
        if npts < 0:
            raise FormatError(f'Invalid patch point count {npts} in {filepath!r}')
        logger.debug('Reading patch %s: %d points', filepath, npts)
        n_bytes = npts * _PATCH_DT.itemsize
        raw = fobj.read(n_bytes)
    if len(raw) != n_bytes:
        raise SizeMismatchError('patch points', npts, len(raw) // _PATCH_DT.itemsize, filepath)
    entries = np.frombuffer(raw, dtype=_PATCH_DT, count=npts)
    vertices, border = _decode_indices(entries['ind'], filepath)
    return Patch(vertices, entries['xyz'].astype(np.float64), border)


def write_patch(filepath, vertices, coords, border=None):
    """Write binary FreeSurfer patch file

    Parameters
    ----------
    filepath : str or file-like
        Path to patch file.  Paths ending in ``.gz`` are gzip compressed.
    vertices : array-like of int
        0-based vertex numbers in the full surface.
    coords : array-like, shape (n, 3)
        Patch coordinates.
    border : None or array-like of bool, optional
        Border flags; default all False.
    """
    ind, coords = _encode_indices(vertices, coords, border)
    entries = np.zeros(len(ind), dtype=_PATCH_DT)
    entries['ind'] = ind
    entries['xyz'] = coords
    with Opener(filepath, 'wb') as fobj:
        write_be(fobj, [PATCH_MARKER, len(ind)], '>i4')
        fobj.write(entries.tobytes())


def _tagged(line, tag, filepath):
    key, sep, value = line.partition('=')
    if not sep or key.strip() != tag:
        raise FormatError(f'Expected a {tag}= line in {filepath!r}; got {line!r}')
    return int(value)


def read_patch_asc(filepath):
    """Read ASCII FreeSurfer patch file

    Returns
    -------
    patch : Patch
        With 1-based ``faces`` (possibly empty).
    """
    with Opener(filepath, 'rb') as fobj:
        lines = [line for line in fobj.read().decode('utf-8').splitlines() if line.strip()]
    if lines and lines[0].startswith('#'):
        lines = lines[1:]
    if not lines:
        raise FormatError(f'ASCII patch {filepath!r} lacks the counts line')
    try:
        npts, nfaces = (int(v) for v in lines[0].split()[:2])
    except ValueError:
        raise FormatError(f'Invalid counts line in {filepath!r}: {lines[0]!r}') from None
    body = lines[1:]
    if len(body) < 2 * npts:
        raise SizeMismatchError('patch points', npts, len(body) // 2, filepath)
    if len(body) - 2 * npts != 2 * nfaces:
        raise SizeMismatchError('patch faces', nfaces, (len(body) - 2 * npts) // 2, filepath)
    try:
        ind = [_tagged(line, 'vno', filepath) for line in body[0 : 2 * npts : 2]]
        coords = np.array([line.split()[:3] for line in body[1 : 2 * npts : 2]], dtype=float)
        face_rows = body[2 * npts :]
        for line in face_rows[0::2]:
            _tagged(line, 'face', filepath)
        faces = np.array([line.split()[:3] for line in face_rows[1::2]], dtype=np.int64)
    except FormatError:
        raise
    except ValueError as err:
        raise FormatError(f'Invalid numeric field in {filepath!r}: {err}') from None
    vertices, border = _decode_indices(ind, filepath)
    return Patch(vertices, coords.reshape(npts, 3), border, faces.reshape(nfaces, 3) + 1)


def write_patch_asc(filepath, vertices, coords, border=None, faces=None):
    """Write ASCII FreeSurfer patch file

    Parameters
    ----------
    filepath : str or file-like
        Path to patch file.
    vertices : array-like of int
        0-based vertex numbers in the full surface.
    coords : array-like, shape (n, 3)
        Patch coordinates.
    border : None or array-like of bool, optional
        Border flags; default all False.
    faces : None or array-like, shape (m, 3), optional
        1-based integer faces, written 0-based.
    """
    ind, coords = _encode_indices(vertices, coords, border)
    if faces is None:
        faces = np.zeros((0, 3), dtype=np.int64)
    faces = np.asarray(faces)
    if faces.ndim != 2 or faces.shape[1] != 3 or not np.issubdtype(faces.dtype, np.integer):
        raise ValidationError(f'Patch faces must be an (m, 3) integer array; got {faces.shape}')
    if faces.size and faces.min() < 1:
        raise ValidationError('Patch face vertex indices must be 1-based')
    lines = [ASCII_PATCH_COMMENT, f'{len(ind)} {len(faces)}']
    for i, (x, y, z) in zip(ind, coords):
        lines += [f'vno={i}', f'{x:f} {y:f} {z:f}']
    for k, (a, b, c) in enumerate(faces - 1):
        lines += [f'face={k}', f'{a} {b} {c}']
    with Opener(filepath, 'wb') as fobj:
        fobj.write(''.join(line + '\n' for line in lines).encode())

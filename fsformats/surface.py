"""Read / write FreeSurfer surface meshes: binary TRIS / QUAD and ASCII

Vertex indices in face arrays are 1-based in memory and 0-based on disk:
readers add 1, writers subtract 1.  A 0 in a face array handed to a writer is
therefore always a caller error, and is rejected before any byte is written.

See:
 * http://www.grahamwideman.com/gw/brain/fs/surfacefileformats.htm
"""

import getpass
import os
import time
import warnings
from collections import OrderedDict
from os.path import splitext

import numpy as np

from .errors import (
    FormatError,
    SizeMismatchError,
    UnsupportedVariantError,
    ValidationError,
)
from .imageglobals import logger
from .openers import Opener
from .primitives import (
    fread3,
    fread3_many,
    fwrite3,
    read_be,
    read_cstring,
    write_be,
    write_cstring,
)

TRIANGLE_MAGIC = 16777214
QUAD_MAGIC = 16777215
NEW_QUAD_MAGIC = 16777213
SURFACE_MAGICS = (TRIANGLE_MAGIC, QUAD_MAGIC, NEW_QUAD_MAGIC)

ASCII_SURFACE_COMMENT = '#!ascii version of surface'

_VOLUME_INFO_KEYS = ('valid', 'filename', 'volume', 'voxelsize', 'xras', 'yras', 'zras', 'cras')


def _magic_error(magic, filepath):
    return FormatError(
        f'Magic number mismatch ({magic} not in {TRIANGLE_MAGIC}, {QUAD_MAGIC}, '
        f'{NEW_QUAD_MAGIC}): {filepath!r} is not a FreeSurfer binary surface file'
    )


def _read_header(fobj, filepath):
    """Read surface header up to the first coordinate; return header dict"""
    magic = fread3(fobj)
    header = {'magic': magic}
    if magic in (QUAD_MAGIC, NEW_QUAD_MAGIC):
        header['face_type'] = 'quads'
        header['num_vertices'] = fread3(fobj)
        header['num_faces'] = fread3(fobj)
    elif magic == TRIANGLE_MAGIC:
        header['face_type'] = 'tris'
        header['create_stamp'] = read_cstring(fobj, b'\n').decode('utf-8', 'replace')
        header['info_line'] = read_cstring(fobj, b'\n').decode('utf-8', 'replace')
        header['num_vertices'] = int(read_be(fobj, '>i4', 1, 'vertex count')[0])
        header['num_faces'] = int(read_be(fobj, '>i4', 1, 'face count')[0])
    else:
        raise _magic_error(magic, filepath)
    logger.debug(
        'Reading %s surface %s: %d vertices, %d faces',
        header['face_type'],
        filepath,
        header['num_vertices'],
        header['num_faces'],
    )
    return header


def _read_quad_payload(fobj, header):
    nvert, nquad = header['num_vertices'], header['num_faces']
    if header['magic'] == QUAD_MAGIC:
        fmt, div = '>i2', 100.0
    else:
        fmt, div = '>f4', 1.0
    coords = read_be(fobj, fmt, nvert * 3, 'vertex coordinates').astype(np.float64) / div
    quads = fread3_many(fobj, nquad * 4, 'quad face vertex indices')
    return coords.reshape(-1, 3), quads.reshape(nquad, 4)


def _read_volume_info(fobj):
    """Helper for reading the footer from a surface file."""
    volume_info = OrderedDict()
    raw = fobj.read(4)
    if len(raw) < 4:
        return volume_info
    head = np.frombuffer(raw, '>i4').astype(np.int32)
    if not np.array_equal(head, [20]):  # Read two more ints
        more = fobj.read(8)
        head = np.concatenate([head, np.frombuffer(more, '>i4', len(more) // 4)])
        if not np.array_equal(head, [2, 0, 20]):
            warnings.warn('Unknown extension code.')
            return volume_info

    volume_info['head'] = head
    for key in _VOLUME_INFO_KEYS:
        pair = fobj.readline().decode('utf-8').split('=')
        if pair[0].strip() != key or len(pair) != 2:
            raise FormatError(f'Error parsing volume info at key {key!r}')
        if key in ('valid', 'filename'):
            volume_info[key] = pair[1].strip()
        elif key == 'volume':
            volume_info[key] = np.array(pair[1].split(), int)
        else:
            volume_info[key] = np.array(pair[1].split(), float)
    # Ignore the rest
    return volume_info


def _serialize_volume_info(volume_info):
    """Helper for serializing the volume info."""
    keys = ('head',) + _VOLUME_INFO_KEYS
    diff = set(volume_info.keys()).difference(keys)
    if len(diff) > 0:
        raise ValidationError(f'Invalid volume info: {diff.pop()}.')

    strings = list()
    for key in keys:
        if key == 'head':
            if not (
                np.array_equal(volume_info[key], [20])
                or np.array_equal(volume_info[key], [2, 0, 20])
            ):
                warnings.warn('Unknown extension code.')
            strings.append(np.array(volume_info[key], dtype='>i4').tobytes())
        elif key in ('valid', 'filename'):
            val = volume_info[key]
            strings.append(f'{key} = {val}\n'.encode())
        elif key == 'volume':
            val = volume_info[key]
            strings.append(f'{key} = {val[0]} {val[1]} {val[2]}\n'.encode())
        else:
            val = volume_info[key]
            strings.append(f'{key:6s} = {val[0]:.10g} {val[1]:.10g} {val[2]:.10g}\n'.encode())
    return b''.join(strings)


def read_geometry_header(filepath):
    """Read the header of a binary FreeSurfer surface file

    Parameters
    ----------
    filepath : str or file-like
        Path to surface file.  Files ending in ``.gz`` are decompressed.

    Returns
    -------
    header : dict
        With keys ``magic``, ``face_type`` (``'tris'`` or ``'quads'``),
        ``num_vertices`` and ``num_faces``, and for triangular files
        ``create_stamp`` and ``info_line``.
    """
    with Opener(filepath, 'rb') as fobj:
        return _read_header(fobj, filepath)


def read_geometry(filepath, read_metadata=False, read_stamp=False):
    """Read a triangular or quadrangular format Freesurfer surface mesh.

    Quadrangular meshes are split into triangles, quad ``(a, b, c, d)``
    giving the triangles ``(a, b, c)`` and ``(c, d, a)``.

    Parameters
    ----------
    filepath : str or file-like
        Path to surface file.  Files ending in ``.gz`` are decompressed.
    read_metadata : bool, optional
        If True, read and return metadata as key-value pairs.

        Valid keys:

        * 'head' : array of int
        * 'valid' : str
        * 'filename' : str
        * 'volume' : array of int, shape (3,)
        * 'voxelsize' : array of float, shape (3,)
        * 'xras' : array of float, shape (3,)
        * 'yras' : array of float, shape (3,)
        * 'zras' : array of float, shape (3,)
        * 'cras' : array of float, shape (3,)

    read_stamp : bool, optional
        Return the comment from the file

    Returns
    -------
    coords : numpy array
        nvtx x 3 array of vertex (x, y, z) coordinates.
    faces : numpy array
        nfaces x 3 array of defining mesh triangles, 1-based.
    volume_info : OrderedDict
        Returned only if `read_metadata` is True.  Key-value pairs found in the
        geometry file.
    create_stamp : str
        Returned only if `read_stamp` is True.  The comment added by the
        program that saved the file.  Empty for quad files.

    Raises
    ------
    FormatError
        If the magic number is not one of the three surface magics.
    SizeMismatchError
        If the file holds fewer coordinates or faces than declared.
    """
    volume_info = OrderedDict()
    with Opener(filepath, 'rb') as fobj:
        header = _read_header(fobj, filepath)
        nvert, nface = header['num_vertices'], header['num_faces']
        if header['face_type'] == 'quads':
            coords, quads = _read_quad_payload(fobj, header)
            faces = quad_to_tris(quads)
        else:
            coords = read_be(fobj, '>f4', nvert * 3, 'vertex coordinates').reshape(nvert, 3)
            faces = read_be(fobj, '>i4', nface * 3, 'face vertex indices').reshape(nface, 3)
            if read_metadata:
                volume_info = _read_volume_info(fobj)

    coords = coords.astype(np.float64)
    faces = faces.astype(np.int64) + 1

    ret = (coords, faces)
    if read_metadata:
        if len(volume_info) == 0:
            warnings.warn('No volume information contained in the file')
        ret += (volume_info,)
    if read_stamp:
        ret += (header.get('create_stamp', ''),)
    return ret


def read_quad_faces(filepath):
    """Return the 0-based ``(nquad, 4)`` face matrix of a quad surface file"""
    with Opener(filepath, 'rb') as fobj:
        header = _read_header(fobj, filepath)
        if header['face_type'] != 'quads':
            raise FormatError(
                f'{filepath!r} is a triangular surface (magic {header["magic"]}), '
                f'expected {QUAD_MAGIC} or {NEW_QUAD_MAGIC}'
            )
        _, quads = _read_quad_payload(fobj, header)
    return quads


def _check_coords(coords):
    coords = np.asarray(coords)
    if coords.ndim != 2 or coords.shape[1] != 3:
        raise ValidationError(f'Vertex coordinates must have shape (N, 3); got {coords.shape}')
    return coords


def _check_faces(faces, n_vertices):
    """Validate 1-based `faces`, return them 0-based"""
    faces = np.asarray(faces)
    if faces.ndim != 2:
        raise ValidationError(f'Faces must be a 2D array; got shape {faces.shape}')
    if not np.issubdtype(faces.dtype, np.integer):
        raise ValidationError(f'The faces array must have an integer dtype; got {faces.dtype}')
    n_zero = int(np.sum(faces == 0))
    if n_zero > 0:
        raise ValidationError(
            'The vertex indices defining the faces must be 1-based, so the value 0 '
            f'must not occur, but {n_zero} of the {faces.size} face vertex indices '
            'have this value (most likely you need to add 1 to all values in faces)'
        )
    if faces.shape[1] == 4:
        raise UnsupportedVariantError(
            'Writing quad surface files is not supported; split the quads with '
            'quad_to_tris and write a triangular surface instead'
        )
    if faces.shape[1] != 3:
        raise ValidationError(
            'Each face must be made up of exactly 3 vertices (triangles) or 4 '
            f'(quads), but faces has {faces.shape[1]} columns'
        )
    if faces.size and (faces.min() < 0 or faces.max() > n_vertices):
        raise ValidationError(
            f'Face vertex indices must be in [1, {n_vertices}]; '
            f'got range [{faces.min()}, {faces.max()}]'
        )
    return faces.astype(np.int64) - 1


def write_geometry(filepath, coords, faces, create_stamp=None, volume_info=None):
    """Write a triangular format Freesurfer surface mesh.

    Parameters
    ----------
    filepath : str or file-like
        Path to surface file.  Paths ending in ``.gz`` are gzip compressed.
    coords : numpy array
        nvtx x 3 array of vertex (x, y, z) coordinates.
    faces : numpy array
        nfaces x 3 integer array of defining mesh triangles, 1-based.
    create_stamp : str, optional
        User/time stamp (default: "created by <user> on <ctime>")
    volume_info : dict-like or None, optional
        Key-value pairs to encode at the end of the file.  Same keys as
        returned by :func:`read_geometry`.

    Returns
    -------
    format_written : str
        Always ``'tris'``.

    Raises
    ------
    ValidationError
        For non-integer faces, faces containing 0, out-of-range indices or a
        face width other than 3 or 4.  Nothing is written.
    UnsupportedVariantError
        For quad (width 4) faces.
    """
    coords = _check_coords(coords)
    faces0 = _check_faces(faces, coords.shape[0])

    if create_stamp is None:
        create_stamp = f'created by {getpass.getuser()} on {time.ctime()}'
    if '\n' in create_stamp:
        raise ValidationError('The creation stamp must be a single line')
    footer = b''
    if volume_info is not None and len(volume_info) > 0:
        footer = _serialize_volume_info(volume_info)

    logger.debug(
        'Writing tris surface %s: %d vertices, %d faces', filepath, len(coords), len(faces0)
    )
    with Opener(filepath, 'wb') as fobj:
        fwrite3(fobj, TRIANGLE_MAGIC)
        write_cstring(fobj, create_stamp, b'\n')
        # empty info line
        write_cstring(fobj, '', b'\n')
        write_be(fobj, [coords.shape[0], faces0.shape[0]], '>i4')
        write_be(fobj, coords.reshape(-1), '>f4')
        write_be(fobj, faces0.reshape(-1), '>i4')
        fobj.write(footer)
    return 'tris'


def _split_rows(lines, n_cols, what, filepath):
    rows = []
    for line in lines:
        fields = line.split()
        if len(fields) < n_cols:
            raise FormatError(
                f'Expected at least {n_cols} fields per {what} row in {filepath!r}; '
                f'got {line!r}'
            )
        rows.append(fields[:n_cols])
    return rows


def read_geometry_asc(filepath):
    """Read a FreeSurfer ASCII surface (``.asc``) file

    Parameters
    ----------
    filepath : str or file-like
        Path to surface file.

    Returns
    -------
    coords : numpy array
        nvtx x 3 float array.
    faces : numpy array
        nfaces x 3 int array, 1-based.

    Raises
    ------
    SizeMismatchError
        If the number of vertex or face rows differs from the header line.
    """
    with Opener(filepath, 'rb') as fobj:
        lines = fobj.read().decode('utf-8').splitlines()
    if len(lines) < 2:
        raise FormatError(f'ASCII surface {filepath!r} lacks the counts line')
    try:
        nvert, nface = (int(v) for v in lines[1].split()[:2])
    except ValueError:
        raise FormatError(f'Invalid counts line in {filepath!r}: {lines[1]!r}') from None
    data = [line for line in lines[2:] if line.strip()]
    if len(data) < nvert:
        raise SizeMismatchError('vertex rows', nvert, len(data), filepath)
    if len(data) - nvert != nface:
        raise SizeMismatchError('face rows', nface, len(data) - nvert, filepath)
    try:
        coords = np.array(_split_rows(data[:nvert], 3, 'vertex', filepath), dtype=np.float64)
        faces = np.array(_split_rows(data[nvert:], 3, 'face', filepath), dtype=np.int64)
    except ValueError as err:
        raise FormatError(f'Invalid numeric field in {filepath!r}: {err}') from None
    return coords.reshape(nvert, 3), faces.reshape(nface, 3) + 1


def write_geometry_asc(filepath, coords, faces):
    """Write a triangular mesh in FreeSurfer ASCII surface format

    Faces are 1-based and are written 0-based; each row gets a trailing 0
    (not-in-patch) flag.  Validation is as for :func:`write_geometry`.

    Returns
    -------
    format_written : str
        Always ``'tris'``.
    """
    coords = _check_coords(coords)
    faces0 = _check_faces(faces, coords.shape[0])
    lines = [ASCII_SURFACE_COMMENT, f'{coords.shape[0]} {faces0.shape[0]}']
    lines += [f'{x:f} {y:f} {z:f} 0' for x, y, z in coords]
    lines += [f'{a} {b} {c} 0' for a, b, c in faces0]
    with Opener(filepath, 'wb') as fobj:
        fobj.write(('\n'.join(lines) + '\n').encode())
    return 'tris'


def _is_ascii(filepath, format):
    if format not in ('auto', 'asc', 'bin'):
        raise ValidationError(f"format must be one of 'auto', 'asc', 'bin'; got {format!r}")
    if format == 'auto':
        if not isinstance(filepath, (str, os.PathLike)):
            return False
        return splitext(os.fspath(filepath))[1].lower() == '.asc'
    return format == 'asc'


def read_surface(filepath, format='auto'):
    """Read mesh from binary or ASCII surface file

    ``format='auto'`` selects ASCII for the ``.asc`` suffix and binary
    otherwise.  Returns ``coords, faces`` with 1-based faces.
    """
    if _is_ascii(filepath, format):
        return read_geometry_asc(filepath)
    return read_geometry(filepath)


def write_surface(filepath, coords, faces, format='auto'):
    """Write mesh to binary or ASCII surface file, chosen as for :func:`read_surface`"""
    if _is_ascii(filepath, format):
        return write_geometry_asc(filepath, coords, faces)
    return write_geometry(filepath, coords, faces)


def quad_to_tris(quads):
    """Split each quad face into two triangles

    Parameters
    ----------
    quads : array-like, shape (n, 4)
        Vertex indices of the quads.  Index base is preserved.

    Returns
    -------
    tris : ndarray, shape (2 * n, 3)
        Quad ``(a, b, c, d)`` gives rows ``(a, b, c)`` and ``(c, d, a)``.

    Examples
    --------
    >>> quad_to_tris([[1, 2, 3, 4]]).tolist()
    [[1, 2, 3], [3, 4, 1]]
    """
    quads = np.asarray(quads)
    if quads.ndim != 2 or quads.shape[1] != 4:
        raise ValidationError(f'Quad faces must have shape (n, 4); got {quads.shape}')
    tris = np.empty((2 * quads.shape[0], 3), dtype=quads.dtype)
    tris[0::2] = quads[:, [0, 1, 2]]
    tris[1::2] = quads[:, [2, 3, 0]]
    return tris


def tris_to_quad(tris):
    """Merge consecutive pairs of triangles into quads

    Inverse of :func:`quad_to_tris`: rows ``(a, b, c)`` and ``(c, d, a)``
    give quad ``(a, b, c, d)``.

    Raises
    ------
    ValidationError
        If the number of triangles is odd.
    """
    tris = np.asarray(tris)
    if tris.ndim != 2 or tris.shape[1] != 3:
        raise ValidationError(f'Triangle faces must have shape (n, 3); got {tris.shape}')
    if tris.shape[0] % 2 != 0:
        raise ValidationError(
            f'Number of tris faces must be even to merge into quads; got {tris.shape[0]}'
        )
    return np.column_stack((tris[0::2], tris[1::2, 1]))

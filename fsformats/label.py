"""Read / write FreeSurfer ASCII ``.label`` files

A label file has a comment line, a line with the number of vertices, then
one ``vno x y z value`` row per vertex.  Vertex numbers are 0-based; volume
labels use -1.
"""

import warnings

import numpy as np

from .errors import FormatError, SizeMismatchError, ValidationError
from .imageglobals import logger
from .openers import Opener

DEFAULT_LABEL_COMMENT = '#!ascii label , from subject  vox2ras=TkReg'


def read_label(filepath, read_scalars=False, read_coords=False):
    """Load in a Freesurfer .label file.

    Parameters
    ----------
    filepath : str or file-like
        Path to label file.
    read_scalars : bool, optional
        If True, read and return scalars associated with each vertex.
    read_coords : bool, optional
        If True, read and return the coordinates of each vertex.

    Returns
    -------
    label_array : numpy array
        Array with indices of vertices included in label, in file order.
    scalar_array : numpy array (floats)
        Only returned if `read_scalars` is True.  Array of scalar data for each
        vertex.
    coord_array : numpy array (floats), shape (n, 3)
        Only returned if `read_coords` is True.
    """
    with Opener(filepath, 'rb') as fobj:
        lines = fobj.read().decode('utf-8').splitlines()
    if len(lines) < 2:
        raise FormatError(f'Label file {filepath!r} lacks the vertex count line')
    try:
        n_vertices = int(lines[1].split()[0])
    except (ValueError, IndexError):
        raise FormatError(f'Invalid vertex count line in {filepath!r}: {lines[1]!r}') from None
    rows = [line.split() for line in lines[2:] if line.strip()]
    if len(rows) != n_vertices:
        raise SizeMismatchError('label rows', n_vertices, len(rows), filepath)
    if any(len(row) < 5 for row in rows):
        raise FormatError(f'Label rows in {filepath!r} must hold: vno x y z value')
    try:
        data = np.array([row[:5] for row in rows], dtype=np.float64).reshape(n_vertices, 5)
    except ValueError as err:
        raise FormatError(f'Invalid numeric field in {filepath!r}: {err}') from None
    label_array = data[:, 0].astype(np.int64)

    surface_vnos = label_array[label_array >= 0]
    if len(np.unique(surface_vnos)) != len(surface_vnos):
        warnings.warn(f'Label file {filepath!r} contains repeated vertex indices')
    logger.debug('Read %d label vertices from %s', n_vertices, filepath)

    ret = (label_array,)
    if read_scalars:
        ret += (data[:, 4],)
    if read_coords:
        ret += (data[:, 1:4],)
    return ret[0] if len(ret) == 1 else ret


def write_label(filepath, vertices, values=None, coords=None, comment=None):
    """Write a FreeSurfer label.

    Parameters
    ----------
    filepath : str or file-like
        Path to label file to produce.
    vertices : array-like of int
        0-based vertex indices; must be unique.
    values : None or array-like, optional
        Value at each vertex; default 0.
    coords : None or array-like, shape (n, 3), optional
        Vertex coordinates; default 0.
    comment : None or str, optional
        First line of the file; a leading ``#`` is added if missing.
    """
    vertices = np.asarray(vertices)
    if vertices.ndim != 1 or not np.issubdtype(vertices.dtype, np.integer):
        raise ValidationError('Label vertices must be a 1D integer array')
    n_vertices = len(vertices)
    if len(np.unique(vertices)) != n_vertices:
        raise ValidationError('Label vertex indices must be unique')
    values = np.zeros(n_vertices) if values is None else np.asarray(values, dtype=float)
    coords = np.zeros((n_vertices, 3)) if coords is None else np.asarray(coords, dtype=float)
    if values.shape != (n_vertices,):
        raise ValidationError(f'Expected {n_vertices} label values; got shape {values.shape}')
    if coords.shape != (n_vertices, 3):
        raise ValidationError(
            f'Expected label coordinates of shape ({n_vertices}, 3); got {coords.shape}'
        )
    if comment is None:
        comment = DEFAULT_LABEL_COMMENT
    if not comment.startswith('#'):
        comment = '#' + comment
    if '\n' in comment:
        raise ValidationError('The label comment must be a single line')

    lines = [comment, f'{n_vertices}']
    for vert, pos, val in zip(vertices, coords, values):
        lines.append(f'{vert} {pos[0]:f} {pos[1]:f} {pos[2]:f} {val:f}')
    with Opener(filepath, 'wb') as fobj:
        fobj.write(''.join(line + '\n' for line in lines).encode())

"""Read / write FreeSurfer annotation (``.annot``) files

An ``.annot`` file contains a sequence of vertices with a label (also known
as an "annotation value" or code) associated with each vertex, and then a
colortable mapping codes to structure names.

Annotation file format versions 1 and 2 are supported for reading,
corresponding to the "old-style" and "new-style" color table layout.
Files are always written in the new style.

See:
 * https://surfer.nmr.mgh.harvard.edu/fswiki/LabelsClutsAnnotationFiles#Annotation
 * https://github.com/freesurfer/freesurfer/blob/dev/matlab/read_annotation.m
 * https://github.com/freesurfer/freesurfer/blob/8b88b34/utils/colortab.c
"""

import numpy as np

from .colortable import (
    check_colortable,
    check_unique_codes,
    colortable_from_arrays,
    with_codes,
    write_colortable,
)
from .errors import FormatError, ValidationError
from .imageglobals import logger
from .openers import Opener
from .primitives import read_be, read_i32, read_lstring, write_be, write_lstring

_ANNOT_DT = '>i4'
#: version of the new-style colortable layout
CTAB_VERSION = 2


def _read_annot_ctab_old_format(fobj, n_entries):
    """Read in an old-style Freesurfer color table from `fobj`.

    Struct indices are the positions of the entries in the table.

    Parameters
    ----------
    fobj : file-like
        Open file handle to a Freesurfer `.annot` file, with seek point
        at the beginning of the color table data.
    n_entries : int
        Number of entries in the color table.

    Returns
    -------
    indices, names, rgba
    """
    read_lstring(fobj, 'original colortable name')
    names = []
    rgba = np.zeros((n_entries, 4), np.int64)
    for i in range(n_entries):
        names.append(read_lstring(fobj, 'structure name'))
        rgba[i] = read_be(fobj, _ANNOT_DT, 4, 'color values')
    return np.arange(n_entries), names, rgba


def _read_annot_ctab_new_format(fobj, ctab_version):
    """Read in a new-style Freesurfer color table from `fobj`.

    Parameters
    ----------
    fobj : file-like
        Open file handle to a Freesurfer `.annot` file, with seek point
        at the beginning of the color table data.
    ctab_version : int
        Color table format version - must be equal to 2

    Returns
    -------
    indices, names, rgba
    """
    # This code works with a file version == 2, nothing else
    if ctab_version != CTAB_VERSION:
        raise FormatError(
            f'Unrecognised .annot colortable version {ctab_version}, expected {CTAB_VERSION}'
        )
    # maximum LUT index present in the file; structures below it may be absent
    read_i32(fobj, 'max struct index')
    read_lstring(fobj, 'original colortable name')
    # number of LUT entries present in the file
    n_entries = read_i32(fobj, 'colortable entry count')
    if n_entries < 0:
        raise FormatError(f'Invalid colortable entry count {n_entries}')
    indices = np.zeros(n_entries, np.int64)
    names = []
    rgba = np.zeros((n_entries, 4), np.int64)
    for i in range(n_entries):
        indices[i] = read_i32(fobj, 'struct index')
        names.append(read_lstring(fobj, 'structure name'))
        rgba[i] = read_be(fobj, _ANNOT_DT, 4, 'color values')
    return indices, names, rgba


def read_annot(filepath, orig_ids=False):
    """Read in a Freesurfer annotation from a ``.annot`` file.

    Parameters
    ----------
    filepath : str or file-like
        Path to annotation file.  Files ending in ``.gz`` are decompressed.
    orig_ids : bool
        Whether to return the vertex ids as stored in the annotation
        file or the colortable struct indices. With orig_ids=False
        vertices with no id have an id set to -1.

    Returns
    -------
    labels : ndarray, shape (n_vertices,)
        Annotation id at each vertex: the struct index whose code matches,
        or -1 for codes missing from the colortable.  Code 0 maps to a
        structure only if one has color ``(0, 0, 0, 0)``.  With
        orig_ids=True, the raw code (0 if the file assigns none).
    ctab : DataFrame
        Colortable with columns ``struct_index``, ``struct_name``, ``r``,
        ``g``, ``b``, ``a``, ``code``.

    Raises
    ------
    FormatError
        Missing colortable, unknown colortable version, vertex numbers out
        of range, repeated struct indices.
    ColorCollisionError
        If two colortable entries have the same code.
    """
    with Opener(filepath, 'rb') as fobj:
        # number of vertices
        vnum = read_i32(fobj, 'vertex count')
        if vnum < 0:
            raise FormatError(f'Invalid vertex count {vnum} in {filepath!r}')

        # vertex ids + annotation values
        data = read_be(fobj, _ANNOT_DT, vnum * 2, 'vertex / code values').reshape(vnum, 2)
        vnos, vcodes = data[:, 0], data[:, 1]
        if vnum and (vnos.min() < 0 or vnos.max() >= vnum):
            raise FormatError(
                f'Vertex numbers in {filepath!r} must be in [0, {vnum}); '
                f'got range [{vnos.min()}, {vnos.max()}]'
            )
        codes = np.zeros(vnum, np.int32)
        codes[vnos] = vcodes

        # is there a color table?
        tag = fobj.read(4)
        if len(tag) < 4:
            raise FormatError(f'Color table not found in annotation file {filepath!r}')
        tag = int(np.frombuffer(tag, _ANNOT_DT)[0])
        if tag != 1:
            raise FormatError(f'Unknown colortable tag {tag} in {filepath!r}, expected 1')

        # in old-format files, the next field will contain the number of
        # entries in the color table. In new-format files, this is minus the
        # colortable version
        n_entries = read_i32(fobj, 'colortable entry count')
        logger.debug(
            'Reading annotation %s: %d vertices, %s colortable',
            filepath,
            vnum,
            'old format' if n_entries > 0 else f'version {-n_entries}',
        )
        if n_entries > 0:
            indices, names, rgba = _read_annot_ctab_old_format(fobj, n_entries)
        else:
            indices, names, rgba = _read_annot_ctab_new_format(fobj, -n_entries)

    _, first = np.unique(indices, return_index=True)
    if len(first) != len(indices):
        dupes = np.delete(indices, first)
        raise FormatError(f'Repeated struct indices {sorted(set(dupes))} in {filepath!r}')
    ctab = colortable_from_arrays(names, rgba, indices)
    check_unique_codes(ctab)

    if orig_ids:
        return codes, ctab
    return _codes_to_indices(codes, ctab), ctab


def _codes_to_indices(codes, ctab):
    ctab_codes = ctab['code'].to_numpy()
    order = np.argsort(ctab_codes)
    sorted_codes = ctab_codes[order]
    labels = np.full(len(codes), -1, np.int64)
    if len(sorted_codes) == 0:
        return labels
    pos = np.clip(np.searchsorted(sorted_codes, codes), 0, len(sorted_codes) - 1)
    # code 0 is unlabeled unless a structure has that color
    found = sorted_codes[pos] == codes
    labels[found] = ctab['struct_index'].to_numpy()[order][pos[found]]
    return labels


def write_annot(filepath, labels, ctab, orig_ids=False, table_name='NOFILE'):
    """Write out a "new-style" Freesurfer annotation file.

    See:
     * https://github.com/freesurfer/freesurfer/blob/dev/matlab/write_annotation.m

    Parameters
    ----------
    filepath : str or file-like
        Path to annotation file to be written.  Paths ending in ``.gz`` are
        gzip compressed.
    labels : ndarray, shape (n_vertices,)
        Struct index at each vertex, -1 for unlabeled vertices.  With
        orig_ids=True, the annotation code at each vertex (0 for unlabeled).
        Unlabeled vertices are stored as code 0, so they read back as the
        structure with color ``(0, 0, 0, 0)`` when `ctab` has one.
    ctab : DataFrame
        Colortable with columns ``struct_index``, ``struct_name``, ``r``,
        ``g``, ``b``, ``a``.  Codes are always computed from the colors; a
        ``code`` column is ignored.
    orig_ids : bool, optional
        Whether `labels` holds codes rather than struct indices.
    table_name : str, optional
        Name of the original colortable file, stored in the file.

    Raises
    ------
    ValidationError
        Labels that are not an integer vector or name structures missing
        from `ctab`; repeated struct indices.
    ColorCollisionError
        If two colortable entries have the same code.
    """
    labels = np.asarray(labels)
    if labels.ndim != 1 or not np.issubdtype(labels.dtype, np.integer):
        raise ValidationError(
            f'Labels must be a 1D integer array; got shape {labels.shape}, dtype {labels.dtype}'
        )
    check_colortable(ctab, unique_colors=True)
    ctab = with_codes(ctab)
    indices = ctab['struct_index'].to_numpy()
    ctab_codes = ctab['code'].to_numpy()
    labels = labels.astype(np.int64)

    if orig_ids:
        unknown = ~(np.isin(labels, ctab_codes) | (labels == 0))
        what = 'codes'
        codes = labels
    else:
        unknown = ~(np.isin(labels, indices) | (labels == -1))
        what = 'struct indices'
        codes = np.zeros(len(labels), np.int64)
        mask = labels != -1
        order = np.argsort(indices)
        codes[mask] = ctab_codes[order][np.searchsorted(indices[order], labels[mask])]
    if unknown.any():
        raise ValidationError(
            f'Label {what} {sorted(set(labels[unknown].tolist()))[:10]} '
            'are not in the colortable'
        )

    vnum = len(labels)
    max_struct = int(indices.max()) + 1 if len(indices) else 0
    logger.debug(
        'Writing annotation %s: %d vertices, %d colortable entries', filepath, vnum, len(ctab)
    )
    with Opener(filepath, 'wb') as fobj:
        # vtxct
        write_be(fobj, [vnum], _ANNOT_DT)
        # vno, label
        write_be(fobj, np.column_stack((np.arange(vnum), codes)), _ANNOT_DT)
        # tag, ctabversion, maxstruc
        write_be(fobj, [1, -CTAB_VERSION, max_struct], _ANNOT_DT)
        write_lstring(fobj, table_name)
        # num_entries
        write_be(fobj, [len(ctab)], _ANNOT_DT)
        for row in ctab.itertuples():
            write_be(fobj, [row.struct_index], _ANNOT_DT)
            write_lstring(fobj, row.struct_name)
            write_be(fobj, [row.r, row.g, row.b, row.a], _ANNOT_DT)


def write_colortable_from_annot(filepath, annot_ctab):
    """Write the colortable of an annotation, as from :func:`read_annot`, as ASCII LUT"""
    write_colortable(filepath, annot_ctab)

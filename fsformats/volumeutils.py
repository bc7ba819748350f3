# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the fsformats package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Code tables and array reading / writing for volume formats"""

from functools import reduce
from operator import mul

import numpy as np

from .errors import SizeMismatchError


class Recoder:
    """class to return canonical code(s) from code or aliases

    >>> codes = ((1, 'label1', 'one', 'first'), (2, 'label2', 'two'))
    >>> recodes = Recoder(codes, fields=('code', 'label'))
    >>> recodes.code['first']
    1
    >>> recodes.label[2]
    'label2'
    >>> recodes['two']
    2
    """

    def __init__(self, codes, fields=('code',), map_maker=dict):
        """Create recoder object

        Parameters
        ----------
        codes : sequence of sequences
            Each sequence defines values (codes) that are equivalent
        fields : {('code',) string sequence}, optional
            names by which elements in sequences can be accessed
        map_maker: callable, optional
            constructor for dict-like objects used to store key value pairs.
        """
        self.fields = tuple(fields)
        self.field1 = {}  # a placeholder for the check below
        for name in fields:
            if name in self.__dict__:
                raise KeyError(f'Input name {name} already in object dict')
            self.__dict__[name] = map_maker()
        self.field1 = self.__dict__[fields[0]]
        self.add_codes(codes)

    def add_codes(self, code_syn_seqs):
        """Add codes to object

        For each sequence ``S`` in `code_syn_seqs`, every value in ``S``
        becomes a key returning ``S[i]`` in the mapping for field ``i``.
        """
        for code_syns in code_syn_seqs:
            for alias in code_syns:
                for field_ind, field_name in enumerate(self.fields):
                    self.__dict__[field_name][alias] = code_syns[field_ind]

    def __getitem__(self, key):
        """Return value from field1 dictionary (first column of values)"""
        return self.field1[key]

    def __contains__(self, key):
        try:
            self.field1[key]
        except (KeyError, TypeError):
            return False
        return True

    def keys(self):
        return self.field1.keys()

    def value_set(self, name=None):
        """Return set of possible returned values for column `name`"""
        d = self.field1 if name is None else self.__dict__[name]
        return set(d.values())


def array_from_file(shape, in_dtype, infile, offset=0, order='F'):
    """Get array from file with specified shape, dtype and file offset

    Parameters
    ----------
    shape : sequence
        sequence specifying output array shape
    in_dtype : numpy dtype
        fully specified numpy dtype, including correct endianness
    infile : file-like
        open file-like object implementing at least read() and seek()
    offset : int, optional
        offset in bytes into `infile` to start reading array data. Default is 0
    order : {'F', 'C'} string
        order in which the data is stored.  Default is 'F' (fortran order).

    Returns
    -------
    arr : ndarray
        array containing data

    Examples
    --------
    >>> from io import BytesIO
    >>> bio = BytesIO()
    >>> arr = np.arange(6).reshape(1,2,3)
    >>> _ = bio.write(b' ' * 10)
    >>> _ = bio.write(arr.tobytes('F'))
    >>> arr2 = array_from_file((1,2,3), arr.dtype, bio, 10)
    >>> np.all(arr == arr2)
    True
    """
    in_dtype = np.dtype(in_dtype)
    if len(shape) == 0:
        return np.array([], dtype=in_dtype)
    # Use reduce and mul to work around numpy integer overflow
    n_items = reduce(mul, shape)
    n_bytes = n_items * in_dtype.itemsize
    if n_bytes == 0:
        return np.zeros(shape, dtype=in_dtype)
    infile.seek(offset)
    data_bytes = infile.read(n_bytes)
    n_read = len(data_bytes)
    if n_bytes != n_read:
        raise SizeMismatchError(
            'data values', n_items, n_read // in_dtype.itemsize, getattr(infile, 'name', None)
        )
    return np.ndarray(shape, in_dtype, buffer=data_bytes, order=order).copy(order='K')


def array_to_file(data, fileobj, out_dtype, offset=None, order='F'):
    """Write `data` to `fileobj` as `out_dtype`, starting at `offset`

    If `offset` is None, write at the current position.  Values are cast
    without scaling; callers choose an `out_dtype` that can hold them.
    """
    if offset is not None:
        seek_tell(fileobj, offset)
    data = np.asanyarray(data)
    fileobj.write(data.astype(out_dtype).tobytes(order=order))


def seek_tell(fileobj, offset):
    """Seek in `fileobj` or check we're in the right place already

    Write-only gzip streams cannot seek backwards, so if we are already at
    `offset` nothing is done; a forward gap is filled with zeros.
    """
    pos = fileobj.tell()
    if pos == offset:
        return
    if pos < offset:
        fileobj.write(b'\x00' * (offset - pos))
    else:
        fileobj.seek(offset)
    assert fileobj.tell() == offset

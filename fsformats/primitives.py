# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the fsformats package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Fixed-width big-endian fields and terminated strings

All multi-byte numbers in FreeSurfer binary files are big-endian, whatever
the byte order of the host.  These helpers read from any object with a
``read`` method (plain files, gzip streams, ``BytesIO``, :class:`Opener`),
and never return short arrays: a short read raises
:class:`~fsformats.errors.SizeMismatchError`.
"""

import numpy as np

from .errors import FormatError, SizeMismatchError, ValidationError

#: largest value representable in a 3-byte unsigned integer
MAX_UINT24 = 2**24 - 1


def _source_name(fobj):
    return getattr(fobj, 'name', None)


def read_be(fobj, dtype, count, what='values'):
    """Read `count` values of big-endian `dtype` from `fobj`

    Parameters
    ----------
    fobj : file-like
        Open binary stream implementing ``read``
    dtype : numpy dtype specifier
        e.g. ``'>i4'``.  Native specifiers are read as big-endian.
    count : int
        Number of values (not bytes) to read
    what : str, optional
        Name of the values, used in error messages

    Returns
    -------
    arr : ndarray, shape (count,)

    Examples
    --------
    >>> from io import BytesIO
    >>> read_be(BytesIO(b'\\x00\\x00\\x00\\x05\\x00\\x07'), '>i2', 3).tolist()
    [0, 5, 7]
    """
    dtype = np.dtype(dtype).newbyteorder('>')
    count = int(count)
    if count < 0:
        raise FormatError(f'Invalid negative count of {what}: {count}')
    n_bytes = count * dtype.itemsize
    data = fobj.read(n_bytes)
    if len(data) != n_bytes:
        raise SizeMismatchError(what, count, len(data) // dtype.itemsize, _source_name(fobj))
    return np.frombuffer(data, dtype, count).copy()


def write_be(fobj, values, dtype):
    """Write `values` to `fobj` as big-endian `dtype`, in C (row-major) order"""
    dtype = np.dtype(dtype).newbyteorder('>')
    fobj.write(np.asarray(values).astype(dtype).tobytes(order='C'))


def read_i32(fobj, what='int32 value'):
    return int(read_be(fobj, '>i4', 1, what)[0])


def read_i16(fobj, what='int16 value'):
    return int(read_be(fobj, '>i2', 1, what)[0])


def read_u16(fobj, what='uint16 value'):
    return int(read_be(fobj, '>u2', 1, what)[0])


def read_f32(fobj, what='float32 value'):
    return float(read_be(fobj, '>f4', 1, what)[0])


def fread3(fobj):
    """Read a 3-byte int from an open binary file object

    Parameters
    ----------
    fobj : file
        File descriptor

    Returns
    -------
    n : int
        A 3 byte int
    """
    b1, b2, b3 = read_be(fobj, '>u1', 3, '3-byte integer bytes').astype(np.int64)
    return int((b1 << 16) + (b2 << 8) + b3)


def fread3_many(fobj, n, what='3-byte integers'):
    """Read `n` 3-byte ints from an open binary file object.

    Returns
    -------
    out : 1D array
        An array of 3 byte int
    """
    try:
        raw = read_be(fobj, '>u1', 3 * n, what)
    except SizeMismatchError as err:
        raise SizeMismatchError(what, n, err.found // 3, _source_name(fobj)) from None
    b1, b2, b3 = raw.reshape(-1, 3).astype(np.int64).T
    return (b1 << 16) + (b2 << 8) + b3


def fwrite3_many(fobj, values):
    """Write integers in `values` as 3-byte big-endian unsigned ints"""
    values = np.asarray(values, dtype=np.int64).ravel()
    if values.size and (values.min() < 0 or values.max() > MAX_UINT24):
        raise ValidationError(
            f'Values must be in [0, {MAX_UINT24}] to fit in 3 bytes; '
            f'got range [{values.min()}, {values.max()}]'
        )
    out = np.empty((values.size, 3), dtype=np.uint8)
    out[:, 0] = (values >> 16) & 255
    out[:, 1] = (values >> 8) & 255
    out[:, 2] = values & 255
    fobj.write(out.tobytes())


def fwrite3(fobj, value):
    """Write a single 3-byte int"""
    fwrite3_many(fobj, [value])


def read_cstring(fobj, terminator=b'\x00'):
    """Read bytes up to and including `terminator`, return them without it"""
    chars = []
    while True:
        char = fobj.read(1)
        if not char:
            raise SizeMismatchError(f'{terminator!r} string terminator', 1, 0, _source_name(fobj))
        if char == terminator:
            return b''.join(chars)
        chars.append(char)


def write_cstring(fobj, s, terminator=b'\x00'):
    """Write `s` followed by `terminator`"""
    if isinstance(s, str):
        s = s.encode()
    fobj.write(s + terminator)


def read_lstring(fobj, what='string'):
    """Read int32 length-prefixed string; the trailing NUL is dropped"""
    length = read_i32(fobj, f'{what} length')
    if length < 0:
        raise FormatError(f'Invalid {what} length {length}')
    raw = fobj.read(length)
    if len(raw) != length:
        raise SizeMismatchError(f'{what} bytes', length, len(raw), _source_name(fobj))
    return raw.split(b'\x00', 1)[0].decode('latin-1')


def write_lstring(fobj, s):
    """Write `s` NUL-terminated and preceded by its int32 length"""
    s = (s if isinstance(s, bytes) else s.encode()) + b'\x00'
    write_be(fobj, [len(s)], '>i4')
    fobj.write(s)

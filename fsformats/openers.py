# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the fsformats package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Context manager openers for filenames and file-likes

Every codec in this package reads and writes through :class:`Opener`, which
picks a gzip stream or a plain file from the filename suffix, and closes what
it opened on every exit path.
"""

from __future__ import annotations

import io
import os
import typing as ty
from os.path import splitext

from ._compression import COMPRESSED_FILE_LIKES, DeterministicGzipFile, gzip_open

if ty.TYPE_CHECKING:
    from types import TracebackType

    OpenerDef = tuple[ty.Callable[..., io.IOBase], tuple[str, ...]]

__all__ = ('Opener', 'Fileish', 'DeterministicGzipFile', 'COMPRESSED_FILE_LIKES')


@ty.runtime_checkable
class Fileish(ty.Protocol):
    def read(self, size: int = -1, /) -> bytes: ...
    def write(self, b: bytes, /) -> int | None: ...


class Opener:
    r"""Class to accept, maybe open, and context-manage file-likes / filenames

    Provides context manager to close files that the constructor opened for
    you.

    Parameters
    ----------
    fileish : str, path-like or file-like
        if str or path-like, then open with suitable opening method. If
        file-like, accept as is
    \*args : positional arguments
        passed to opening method when `fileish` is a filename.  ``mode``, if
        not specified, is `rb`.  ``compresslevel``, if relevant, and not
        specified, is set from class variable ``default_compresslevel``.
    \*\*kwargs : keyword arguments
        passed to opening method when `fileish` is a filename.  Change of
        defaults as for \*args

    Examples
    --------
    >>> from io import BytesIO
    >>> with Opener(BytesIO(b'abc')) as fobj:
    ...     fobj.read()
    b'abc'
    """

    gz_def = (gzip_open, ('mode', 'compresslevel', 'mtime'))
    #: suffix -> (opener, accepted argument names); ``None`` is the default
    compress_ext_map: dict[str | None, OpenerDef] = {
        '.gz': gz_def,
        '.mgz': gz_def,
        None: (open, ('mode', 'buffering')),  # default
    }
    #: default compression level when writing gz files
    default_compresslevel = 1
    #: whether to ignore case looking for compression extensions
    compress_ext_icase: bool = True

    fobj: io.IOBase

    def __init__(self, fileish: str | os.PathLike | io.IOBase, *args, **kwargs):
        if isinstance(fileish, (io.IOBase, Fileish)):
            self.fobj = fileish
            self.me_opened = False
            self._name = getattr(fileish, 'name', None)
            return
        fileish = os.fspath(fileish)
        opener, arg_names = self._get_opener_argnames(fileish)
        # Get full arguments to check for mode and compresslevel
        full_kwargs = {**kwargs, **dict(zip(arg_names, args))}
        # Set default mode
        if 'mode' not in full_kwargs:
            kwargs['mode'] = 'rb'
        # Default compression level
        if 'compresslevel' in arg_names and 'compresslevel' not in full_kwargs:
            kwargs['compresslevel'] = self.default_compresslevel
        self.fobj = opener(fileish, *args, **kwargs)
        self._name = fileish
        self.me_opened = True

    def _get_opener_argnames(self, fileish: str) -> OpenerDef:
        _, ext = splitext(fileish)
        if self.compress_ext_icase:
            ext = ext.lower()
            for key in self.compress_ext_map:
                if key is None:
                    continue
                if key.lower() == ext:
                    return self.compress_ext_map[key]
        elif ext in self.compress_ext_map:
            return self.compress_ext_map[ext]
        return self.compress_ext_map[None]

    @classmethod
    def is_compressed_name(klass, fileish) -> bool:
        """True if filename `fileish` selects a compressing opener"""
        _, ext = splitext(os.fspath(fileish))
        if klass.compress_ext_icase:
            keys = {key.lower() for key in klass.compress_ext_map if key is not None}
            return ext.lower() in keys
        return ext in klass.compress_ext_map

    @property
    def closed(self) -> bool:
        return self.fobj.closed

    @property
    def name(self) -> str | None:
        """Return ``self.fobj.name`` or self._name if not present

        self._name will be None if object was created with a fileobj, otherwise
        it will be the filename.
        """
        return self._name

    @property
    def mode(self) -> str:
        if hasattr(self.fobj, 'mode'):
            return self.fobj.mode
        raise AttributeError(f'{self.fobj.__class__.__name__} has no attribute "mode"')

    @property
    def is_compressed(self) -> bool:
        return isinstance(self.fobj, COMPRESSED_FILE_LIKES)

    def read(self, size: int = -1, /) -> bytes:
        return self.fobj.read(size)

    def readline(self, size: int = -1, /) -> bytes:
        return self.fobj.readline(size)

    def write(self, b: bytes, /) -> int | None:
        return self.fobj.write(b)

    def seek(self, pos: int, whence: int = 0, /) -> int:
        return self.fobj.seek(pos, whence)

    def tell(self, /) -> int:
        return self.fobj.tell()

    def close(self, /) -> None:
        return self.fobj.close()

    def __iter__(self) -> ty.Iterator[bytes]:
        return iter(self.fobj)

    def close_if_mine(self) -> None:
        """Close ``self.fobj`` iff we opened it in the constructor"""
        if self.me_opened:
            self.close()

    def __enter__(self) -> Opener:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close_if_mine()

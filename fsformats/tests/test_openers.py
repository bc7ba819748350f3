# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the fsformats package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Test for openers module"""
import hashlib
import time
from gzip import GzipFile
from io import BytesIO
from pathlib import Path
from unittest import mock

import pytest

from ..openers import DeterministicGzipFile, Opener
from ..tmpdirs import InTemporaryDirectory


class Lunk:
    # bare file-like for testing
    closed = False

    def __init__(self, message):
        self.message = message

    def write(self, b, /):
        pass

    def read(self, size=-1, /):
        return self.message


def test_Opener():
    # Test default mode is 'rb'
    fobj = Opener(__file__)
    assert fobj.mode == 'rb'
    fobj.close()
    # That it's a context manager
    with Opener(__file__) as fobj:
        assert fobj.mode == 'rb'
    # with keyword arguments
    with Opener(__file__, mode='rb') as fobj:
        assert fobj.mode == 'rb'
    # fileobj returns fileobj passed through
    message = b"Wine?  Wouldn't you?"
    for obj in (BytesIO(message), Lunk(message)):
        with Opener(obj) as fobj:
            assert fobj.read() == message
        # Which does not close the object
        assert not obj.closed
        # mode is gently ignored
        fobj = Opener(obj, mode='r')


def test_Opener_various():
    # Check we can do all sorts of files here
    message = b'Oh what a giveaway'
    with InTemporaryDirectory():
        sobj = BytesIO()
        for input in ('lh.white', 'lh.white.gz', Path('lh.thickness.mgz'), sobj):
            with Opener(input, 'wb') as fobj:
                fobj.write(message)
                assert fobj.tell() == len(message)
            if input == sobj:
                input.seek(0)
            with Opener(input, 'rb') as fobj:
                message_back = fobj.read()
                assert message == message_back
            if input != sobj:
                # the compressed files start with the gzip magic number
                compressed = str(input).endswith(('.gz', '.mgz'))
                assert (Path(input).read_bytes()[:2] == b'\x1f\x8b') == compressed
                with Opener(input) as fobj:
                    assert fobj.is_compressed == compressed


def test_Opener_gzip_type():
    # Opener uses DeterministicGzipFile for .gz and .mgz, whatever the case
    with InTemporaryDirectory():
        for fname in ('test.gz', 'test.mgz', 'test.GZ', 'lh.orig.MGZ'):
            with Opener(fname, 'wb') as fobj:
                assert isinstance(fobj.fobj, DeterministicGzipFile)
            assert Opener.is_compressed_name(fname)
        with Opener('test.mgh', 'wb') as fobj:
            assert not isinstance(fobj.fobj, GzipFile)
        assert not Opener.is_compressed_name('test.mgh')


def test_compressionlevel():
    # Check default and set compression level
    with open(__file__, 'rb') as fobj:
        my_self = fobj.read()
    many_selves = my_self * 50

    class MyOpener(Opener):
        default_compresslevel = 5

    with InTemporaryDirectory():
        for ext in ('gz', 'mgz', 'GZ'):
            for opener, default_val in ((Opener, 1), (MyOpener, 5)):
                sizes = {}
                for compresslevel in ('default', 1, 5):
                    fname = 'test.' + ext
                    kwargs = {'mode': 'wb'}
                    if compresslevel != 'default':
                        kwargs['compresslevel'] = compresslevel
                    with opener(fname, **kwargs) as fobj:
                        fobj.write(many_selves)
                    sizes[compresslevel] = len(Path(fname).read_bytes())
                assert sizes['default'] == sizes[default_val]
                assert sizes[1] > sizes[5]


def test_compressed_ext_case():
    # Test openers usually ignore case for compressed exts
    contents = b'palindrome of Bolton is notlob'

    class StrictOpener(Opener):
        compress_ext_icase = False

    with InTemporaryDirectory():
        for fname in ('test.gz', 'test.GZ', 'test.gZ'):
            with Opener(fname, 'wb') as fobj:
                fobj.write(contents)
            with Opener(fname, 'rb') as fobj:
                assert fobj.read() == contents
            with StrictOpener(fname, 'rb') as fobj:
                if fname == 'test.gz':
                    assert isinstance(fobj.fobj, GzipFile)
                    assert fobj.read() == contents
                else:
                    assert not isinstance(fobj.fobj, GzipFile)
                    assert fobj.read() != contents


def test_name():
    # The wrapper gives everything a name, maybe None
    with InTemporaryDirectory():
        for input in ('test.txt', 'test.txt.gz', Path('test.mgz')):
            with Opener(input, 'wb') as fobj:
                assert fobj.name == str(input)
        sobj = BytesIO()
        assert Opener(sobj).name is None
        with open('test.txt', 'rb') as fobj:
            assert Opener(fobj).name == 'test.txt'


def test_close_if_mine():
    # Test that we close the file iff we opened it
    with InTemporaryDirectory():
        sobj = BytesIO()
        lunk = Lunk(b'')
        for input in ('test.txt', 'test.txt.gz', sobj, lunk):
            fobj = Opener(input, 'wb')
            if hasattr(fobj.fobj, 'closed'):
                assert not fobj.closed
            fobj.close_if_mine()
            is_str = isinstance(input, str)
            if hasattr(fobj.fobj, 'closed'):
                assert fobj.closed == is_str


def test_closed_on_error():
    with InTemporaryDirectory():
        with pytest.raises(RuntimeError):
            with Opener('lh.white.gz', 'wb') as fobj:
                raise RuntimeError('bail out')
        assert fobj.closed


def md5sum(fname):
    with open(fname, 'rb') as fobj:
        return hashlib.md5(fobj.read()).hexdigest()


def test_DeterministicGzipFile():
    msg = b"Hello, I'd like to have an argument."
    with InTemporaryDirectory():
        # No filename, no mtime
        with open('ref.gz', 'wb') as fobj:
            with GzipFile(filename='', mode='wb', fileobj=fobj, mtime=0) as gzobj:
                gzobj.write(msg)
        anon_chksum = md5sum('ref.gz')

        with DeterministicGzipFile('default.gz', 'wb') as fobj:
            internal_fobj = fobj.myfileobj
            fobj.write(msg)
        # Check that myfileobj is being closed by GzipFile.close()
        # This is in case GzipFile changes its internal implementation
        assert internal_fobj.closed
        assert md5sum('default.gz') == anon_chksum

        # Writing the same content at different times gives the same bytes
        now = time.time()
        with mock.patch('time.time') as t:
            t.return_value = now + 1000
            with Opener('later.gz', 'wb', 9) as fobj:
                fobj.write(msg)
        assert md5sum('later.gz') == anon_chksum

        # Different filenames, same contents
        with Opener('other_name.gz', 'wb', 9) as fobj:
            fobj.write(msg)
        assert md5sum('other_name.gz') == anon_chksum

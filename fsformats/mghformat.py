# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the fsformats package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Header and image reading / writing functions for MGH image format

MGH files hold a 284 byte header, the data array in Fortran order, and an
optional footer of acquisition parameters.  ``.mgz`` files are the same,
gzip compressed.

See https://surfer.nmr.mgh.harvard.edu/fswiki/FsTutorial/MghFormat
"""
import numpy as np

from . import imageglobals
from .errors import FormatError, ValidationError
from .openers import Opener
from .volumeutils import Recoder, array_from_file, array_to_file, seek_tell

# mgh header
DATA_OFFSET = 284
# Note that mgh data is strictly big endian ( hence the > sign )
header_dtd = [
    ('version', '>i4'),             # 0; must be 1
    ('dims', '>i4', (4,)),          # 4; width, height, depth, nframes
    ('type', '>i4'),                # 20; data type
    ('dof', '>i4'),                 # 24; degrees of freedom
    ('goodRASFlag', '>i2'),         # 28; Mdc, Pxyz_c fields valid
    ('delta', '>f4', (3,)),         # 30; zooms (X, Y, Z)
    ('Mdc', '>f4', (3, 3)),         # 42; TRANSPOSE of direction cosine matrix
    ('Pxyz_c', '>f4', (3,)),        # 78; mm from (0, 0, 0) RAS to vol center
]
# Optional footer, after the data
footer_dtd = [
    ('tr', '>f4'),                  # 0; repetition time
    ('flip_angle', '>f4'),          # 4; flip angle
    ('te', '>f4'),                  # 8; echo time
    ('ti', '>f4'),                  # 12; inversion time
]

header_dtype = np.dtype(header_dtd)
footer_dtype = np.dtype(footer_dtd)
hf_dtype = np.dtype(header_dtd + footer_dtd)

#: acquisition parameters (tr, flip_angle, te, ti) when none are given
DEFAULT_MR_PARAMS = (0.0, 0.0, 0.0, 0.0)
#: direction cosines used when goodRASFlag is 0 (coronal, conformed)
DEFAULT_MDC = ((-1, 0, 0), (0, 0, 1), (0, -1, 0))

_dtdefs = (  # code, label, dtype, bytes per voxel, mri type, aliases
    (0, 'uint8', np.dtype('>u1'), 1, 'MRI_UCHAR', np.uint8, np.dtype(np.uint8)),
    (4, 'int16', np.dtype('>i2'), 2, 'MRI_SHORT', np.int16, np.dtype(np.int16)),
    (1, 'int32', np.dtype('>i4'), 4, 'MRI_INT', np.int32, np.dtype(np.int32)),
    (3, 'float', np.dtype('>f4'), 4, 'MRI_FLOAT', np.float32, np.dtype(np.float32), 'float32'),
)

# make full code alias bank, including dtype column
data_type_codes = Recoder(
    _dtdefs,
    fields=('code', 'label', 'numpy_dtype', 'bytespervox', 'mritype', 'np_type', 'np_dtype'),
)


class MGHError(FormatError):
    """Exception for MGH format related problems.

    To be raised whenever MGH is not happy, or we are not happy with
    MGH.
    """


def _from_matvec(matrix, vector):
    affine = np.eye(4)
    affine[:3, :3] = matrix
    affine[:3, 3] = vector
    return affine


class MGHHeader:
    """Class for MGH format header

    The header also holds the footer data (acquisition parameters) which MGH
    places after the data chunk.
    """

    # Copies of module-level definitions
    template_dtype = hf_dtype
    _hdrdtype = header_dtype
    _ftrdtype = footer_dtype
    _data_type_codes = data_type_codes

    def __init__(self, binaryblock=None, check=True):
        """Initialize header from binary data block

        Parameters
        ----------
        binaryblock : {None, bytes} optional
            binary block to set into header.  By default, None, in
            which case we insert the default empty header block.  The
            footer part may be missing, and is then zero.
        check : bool, optional
            Whether to check content of header in initialization.
            Default is True.
        """
        if binaryblock is None:
            self._structarr = self.default_structarr()
        else:
            min_size = self._hdrdtype.itemsize
            full_size = self.template_dtype.itemsize
            if len(binaryblock) < min_size:
                raise MGHError(
                    f'MGH header needs at least {min_size} bytes; got {len(binaryblock)}'
                )
            binaryblock = binaryblock[:full_size] + b'\x00' * (full_size - len(binaryblock))
            self._structarr = np.ndarray(
                shape=(), dtype=self.template_dtype, buffer=binaryblock
            ).copy()
        if check:
            self.check_fix()

    @classmethod
    def default_structarr(klass):
        """Return header data for empty header; always big endian"""
        structarr = np.zeros((), dtype=klass.template_dtype)
        structarr['version'] = 1
        structarr['dims'] = 1
        structarr['type'] = 3
        return structarr

    @property
    def binaryblock(self):
        return self._structarr.tobytes()

    def __getitem__(self, item):
        return self._structarr[item]

    def __setitem__(self, item, value):
        self._structarr[item] = value

    def keys(self):
        return list(self.template_dtype.names)

    def __eq__(self, other):
        if not isinstance(other, MGHHeader):
            return NotImplemented
        return self.binaryblock == other.binaryblock

    def copy(self):
        """Return copy of structure"""
        return self.__class__(self.binaryblock, check=False)

    @staticmethod
    def chk_version(hdr):
        if hdr['version'] != 1:
            return 40, f'Unknown MGH format version {hdr["version"]}, expected 1'
        return 0, ''

    @staticmethod
    def chk_dims(hdr):
        dims = hdr['dims']
        if np.any(dims <= 0):
            return 40, f'Dimensions of the data should be positive; got {tuple(dims)}'
        return 0, ''

    @staticmethod
    def chk_type(hdr):
        code = int(hdr['type'])
        if code not in hdr._data_type_codes:
            return 40, f'Unknown MGH data type code {code}'
        return 0, ''

    @staticmethod
    def chk_ras_flag(hdr):
        if hdr['goodRASFlag'] not in (0, 1):
            return 30, f'goodRASFlag should be 0 or 1; got {hdr["goodRASFlag"]}'
        return 0, ''

    @classmethod
    def _get_checks(klass):
        return (klass.chk_version, klass.chk_dims, klass.chk_type, klass.chk_ras_flag)

    def check_fix(self, logger=None, error_level=None):
        """Log problems found in header; raise for serious ones

        Parameters
        ----------
        logger : None or logging.Logger
            Defaults to ``imageglobals.logger``
        error_level : None or int
            Problems of this level or above raise :class:`MGHError`.
            Defaults to ``imageglobals.error_level``
        """
        if logger is None:
            logger = imageglobals.logger
        if error_level is None:
            error_level = imageglobals.error_level
        for check in self._get_checks():
            level, message = check(self)
            if not level:
                continue
            logger.log(level, message)
            if level >= error_level:
                raise MGHError(message)

    @classmethod
    def from_fileobj(klass, fileobj, check=True):
        """classmethod for loading a MGH fileobject"""
        # MGH stores header information after the data chunk too. We read
        # the header, deduce the data size, skip over the data and then read
        # the footer
        hdr_str = fileobj.read(klass._hdrdtype.itemsize)
        if len(hdr_str) < klass._hdrdtype.itemsize:
            raise MGHError(
                f'MGH header needs {klass._hdrdtype.itemsize} bytes; got {len(hdr_str)}'
            )
        hdr = klass(hdr_str, check=check)
        if not check:
            return hdr
        fileobj.seek(hdr.get_footer_offset())
        ftr_str = fileobj.read(klass._ftrdtype.itemsize)
        return klass(hdr_str + ftr_str, check=check)

    @property
    def ras_good(self):
        return bool(self._structarr['goodRASFlag'])

    def _ras_fields(self):
        """Return delta, Mdc, Pxyz_c, or defaults if goodRASFlag is 0"""
        hdr = self._structarr
        if not hdr['goodRASFlag']:
            return np.ones(3), np.array(DEFAULT_MDC, dtype=float), np.zeros(3)
        return (
            hdr['delta'].astype(float),
            hdr['Mdc'].astype(float),
            hdr['Pxyz_c'].astype(float),
        )

    def get_affine(self):
        """Get the vox2ras affine transform from the header information.

        MGH format doesn't store the transform directly. Instead it's gleaned
        from the zooms ( delta ), direction cosines ( Mdc ), RAS centers (
        Pxyz_c ) and the dimensions.
        """
        delta, Mdc, Pxyz_c = self._ras_fields()
        MdcD = Mdc.T * delta
        vol_center = MdcD.dot(self._structarr['dims'][:3]) / 2
        return _from_matvec(MdcD, Pxyz_c - vol_center)

    get_vox2ras = get_affine

    def get_vox2ras_tkr(self):
        """Get the vox2ras-tkr transform. See "Torig" here:
        https://surfer.nmr.mgh.harvard.edu/fswiki/CoordinateSystems
        """
        ds = self._ras_fields()[0]
        ns = self._structarr['dims'][:3] * ds / 2.0
        v2rtkr = np.array(
            [
                [-ds[0], 0, 0, ns[0]],
                [0, 0, ds[2], -ns[2]],
                [0, -ds[1], 0, ns[1]],
                [0, 0, 0, 1],
            ],
            dtype=np.float32,
        )
        return v2rtkr

    def get_ras2vox(self):
        """return the inverse get_affine()"""
        return np.linalg.inv(self.get_affine())

    def set_affine(self, affine):
        """Set delta, Mdc and Pxyz_c from 4x4 `affine`; sets goodRASFlag

        The data shape must be set first, as the RAS center depends on it.
        """
        affine = np.asarray(affine, dtype=float)
        if affine.shape != (4, 4):
            raise ValidationError(f'vox2ras must be a 4x4 matrix; got shape {affine.shape}')
        voxelsize = np.sqrt(np.sum(affine[:3, :3] ** 2, axis=0))
        if np.any(voxelsize == 0):
            raise ValidationError('vox2ras has a zero-length voxel axis')
        shape = self._structarr['dims'][:3]
        Mdc = affine[:3, :3] / voxelsize
        c_ras = affine.dot(np.hstack((shape / 2.0, [1])))[:3]
        hdr = self._structarr
        hdr['delta'] = voxelsize
        hdr['Mdc'] = Mdc.T
        hdr['Pxyz_c'] = c_ras
        hdr['goodRASFlag'] = 1

    def get_data_dtype(self):
        """Get numpy dtype for MGH data"""
        code = int(self._structarr['type'])
        return self._data_type_codes.numpy_dtype[code]

    def set_data_dtype(self, datatype):
        """Set numpy dtype for data from code or dtype or type"""
        try:
            code = self._data_type_codes.code[datatype]
        except (KeyError, TypeError):
            raise MGHError(f'datatype dtype "{datatype}" not recognized') from None
        self._structarr['type'] = code

    def _ndims(self):
        """Get dimensionality of data

        MGH does not encode dimensionality explicitly, so an image where the
        fourth dimension is 1 is treated as three-dimensional.
        """
        return 3 + (self._structarr['dims'][3] > 1)

    def get_zooms(self):
        """Get zooms from header

        Returns the spacing of voxels in the x, y, and z dimensions, and for
        four-dimensional files the repetition time (TR) in ms.
        """
        tzoom = (float(self._structarr['tr']),) if self._ndims() > 3 else ()
        return tuple(float(z) for z in self._ras_fields()[0]) + tzoom

    def get_data_shape(self):
        """Get shape of data"""
        shape = tuple(int(d) for d in self._structarr['dims'])
        # If last dimension (nframes) is 1, remove it because
        # we want to maintain 3D and it's redundant
        if shape[3] == 1:
            shape = shape[:3]
        return shape

    def set_data_shape(self, shape):
        """Set shape of data

        Parameters
        ----------
        shape : sequence
           sequence of 1 to 4 positive integers; missing trailing dimensions
           are 1
        """
        shape = tuple(int(s) for s in shape)
        if len(shape) > 4:
            raise ValidationError(f'Shape may be at most 4 dimensional; got {shape}')
        if any(s <= 0 for s in shape):
            raise ValidationError(f'MGH dimensions must be positive; got {shape}')
        self._structarr['dims'] = shape + (1,) * (4 - len(shape))

    def get_data_bytespervox(self):
        """Get the number of bytes per voxel of the data"""
        return int(self._data_type_codes.bytespervox[int(self._structarr['type'])])

    def get_data_size(self):
        """Get the number of bytes the data chunk occupies."""
        return self.get_data_bytespervox() * int(np.prod(self._structarr['dims'], dtype=np.int64))

    def get_data_offset(self):
        """Return offset into data file to read data"""
        return DATA_OFFSET

    def get_footer_offset(self):
        """Return offset where the footer resides.
        Occurs immediately after the data chunk.
        """
        return self.get_data_offset() + self.get_data_size()

    def get_mr_params(self):
        """Return acquisition parameters (tr, flip_angle, te, ti) as array"""
        sa = self._structarr
        return np.array([sa['tr'], sa['flip_angle'], sa['te'], sa['ti']], dtype=float)

    def set_mr_params(self, params):
        params = np.asarray(params, dtype=float).ravel()
        if params.shape != (4,):
            raise ValidationError(
                f'mr_params must hold 4 values (tr, flip_angle, te, ti); got {params.size}'
            )
        sa = self._structarr
        sa['tr'], sa['flip_angle'], sa['te'], sa['ti'] = params

    def data_from_fileobj(self, fileobj):
        """Read data array from `fileobj`

        Parameters
        ----------
        fileobj : file-like
           Must be open, and implement ``read`` and ``seek`` methods

        Returns
        -------
        arr : ndarray
           data array
        """
        dtype = self.get_data_dtype()
        shape = self.get_data_shape()
        offset = self.get_data_offset()
        return array_from_file(shape, dtype, fileobj, offset)

    def writehdr_to(self, fileobj):
        """Write header to fileobj, padded with zeros up to the data offset

        Parameters
        ----------
        fileobj : file-like object
           Should implement ``write`` and ``tell`` methods, and be positioned
           at the start of the file
        """
        hdr_nofooter = np.ndarray((), dtype=self._hdrdtype, buffer=self.binaryblock)
        if not self._structarr['goodRASFlag']:
            # RAS fields are unused; store zeros
            hdr_nofooter = hdr_nofooter.copy()
            for field in ('delta', 'Mdc', 'Pxyz_c'):
                hdr_nofooter[field] = 0
        fileobj.write(hdr_nofooter.tobytes())
        seek_tell(fileobj, self.get_data_offset())

    def writeftr_to(self, fileobj):
        """Write footer to fileobj

        Footer data is located after the data chunk. So move there and write.
        """
        ftr_loc_in_hdr = len(self.binaryblock) - self._ftrdtype.itemsize
        ftr_nd = np.ndarray((), dtype=self._ftrdtype, buffer=self.binaryblock, offset=ftr_loc_in_hdr)
        seek_tell(fileobj, self.get_footer_offset())
        fileobj.write(ftr_nd.tobytes())


def _choose_dtype(data, dtype=None):
    """Return big-endian MGH dtype in which to store `data`"""
    codes = MGHHeader._data_type_codes
    if dtype is not None:
        if dtype not in codes:
            raise ValidationError(
                f'MGH data type must be one of uint8, int16, int32, float32; got {dtype!r}'
            )
        out_dtype = codes.numpy_dtype[dtype]
        if out_dtype.kind in 'iu' and data.size:
            info = np.iinfo(out_dtype)
            if not np.all(np.isfinite(data)) or data.min() < info.min or data.max() > info.max:
                raise ValidationError(f'Data values do not fit into {out_dtype.name}')
        return out_dtype
    if data.dtype in codes:
        return codes.numpy_dtype[data.dtype]
    if data.dtype.kind in 'iub':
        info = np.iinfo(np.int32)
        if data.size == 0 or (data.min() >= info.min and data.max() <= info.max):
            return codes.numpy_dtype['int32']
    return codes.numpy_dtype['float']


class MGHImage:
    """Class for MGH format image

    Parameters
    ----------
    dataobj : array-like
        1 to 4 dimensional data.  Fewer than 3 dimensions are padded to 3.
    affine : None or (4, 4) array-like, optional
        vox2ras transform.  If given, the header's goodRASFlag is set.
    header : None or MGHHeader, optional
        Header to copy dof and footer values from.
    mr_params : None or sequence of 4 floats, optional
        tr, flip_angle, te, ti.
    dtype : None or dtype specifier, optional
        On-disk data type; by default chosen from the data.
    """

    header_class = MGHHeader
    valid_exts = ('.mgh', '.mgz')

    def __init__(self, dataobj, affine=None, header=None, mr_params=None, dtype=None):
        data = np.asanyarray(dataobj)
        if data.ndim > 4:
            raise ValidationError(f'MGH data may be at most 4 dimensional; got {data.shape}')
        if data.ndim < 3:
            data = data.reshape(data.shape + (1,) * (3 - data.ndim))
        hdr = self.header_class() if header is None else header.copy()
        hdr.set_data_shape(data.shape)
        hdr.set_data_dtype(_choose_dtype(data, dtype))
        if affine is not None:
            hdr.set_affine(affine)
        if mr_params is not None:
            hdr.set_mr_params(mr_params)
        self._dataobj = data
        self._header = hdr

    @property
    def dataobj(self):
        return self._dataobj

    @property
    def header(self):
        return self._header

    @property
    def affine(self):
        return self._header.get_affine()

    @property
    def shape(self):
        return self._dataobj.shape

    @property
    def ras_good(self):
        return self._header.ras_good

    @property
    def mr_params(self):
        return self._header.get_mr_params()

    def get_fdata(self):
        return np.asarray(self._dataobj, dtype=np.float64)

    @classmethod
    def from_fileobj(klass, fileobj):
        header = klass.header_class.from_fileobj(fileobj)
        data = header.data_from_fileobj(fileobj)
        return klass(data, header=header)

    @classmethod
    def from_filename(klass, filename):
        """Load image from `filename`; ``.mgz`` files are decompressed"""
        imageglobals.logger.debug('Reading MGH image %s', filename)
        with Opener(filename, 'rb') as fobj:
            return klass.from_fileobj(fobj)

    load = from_filename

    def to_fileobj(self, fileobj):
        hdr = self._header
        shape = hdr.get_data_shape()
        data = self._dataobj
        if data.shape[: len(shape)] != shape or data.size != np.prod(shape):
            raise ValidationError(
                'Data should be shape (%s)' % ', '.join(str(s) for s in shape)
            )
        hdr.writehdr_to(fileobj)
        array_to_file(data, fileobj, hdr.get_data_dtype(), hdr.get_data_offset())
        hdr.writeftr_to(fileobj)

    def to_filename(self, filename):
        """Write image to `filename`; ``.mgz`` files are gzip compressed"""
        imageglobals.logger.debug(
            'Writing MGH image %s: shape %s, ras_good %s', filename, self.shape, self.ras_good
        )
        with Opener(filename, 'wb') as fobj:
            self.to_fileobj(fobj)


load = MGHImage.from_filename


def save(img, filename):
    """Save MGHImage `img` to `filename`"""
    img.to_filename(filename)


def read_mgh(filepath):
    """Read MGH / MGZ file `filepath`, return :class:`MGHImage`

    ``img.dataobj`` holds the data, ``img.affine`` the vox2ras transform
    (a default when ``img.ras_good`` is False) and ``img.mr_params`` the
    acquisition parameters.
    """
    return MGHImage.from_filename(filepath)


def write_mgh(filepath, data, vox2ras=None, mr_params=None, dtype=None):
    """Write `data` to MGH / MGZ file `filepath`

    Parameters
    ----------
    filepath : str or file-like
        Output path; a ``.mgz`` suffix means gzip compression.
    data : array-like
        1 to 4 dimensional data.
    vox2ras : None or (4, 4) array-like, optional
        vox2ras transform.  The goodRASFlag is set exactly when this is
        given; otherwise it is 0 and the RAS header fields are zero.
    mr_params : None or sequence of 4 floats, optional
        tr, flip_angle, te, ti.  Zeros by default.
    dtype : None or dtype specifier, optional
        One of uint8, int16, int32, float32.  By default chosen from the
        data: supported dtypes are kept, other integers become int32 and
        everything else float32.
    """
    if mr_params is None:
        mr_params = DEFAULT_MR_PARAMS
    img = MGHImage(data, affine=vox2ras, mr_params=mr_params, dtype=dtype)
    img.to_filename(filepath)
    return img

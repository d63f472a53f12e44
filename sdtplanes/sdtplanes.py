# sdtplanes.py

# Copyright (c) 2026, Christoph Gohlke
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright notice,
#    this list of conditions and the following disclaimer in the documentation
#    and/or other materials provided with the distribution.
#
# 3. Neither the name of the copyright holder nor the names of its
#    contributors may be used to endorse or promote products derived from
#    this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

"""Read image planes from Becker & Hickl SPC-Image SDT files.

Sdtplanes is a Python library to read fluorescence lifetime images from
SDT files produced by Becker & Hickl SPCM software as a stream of 16-bit
image planes. SDT files contain time correlated single photon counting
(TCSPC) histograms for every pixel and spectral channel of an image.

Sdtplanes exposes the acquisition geometry of the first data block (image
width and height, number of channels, time bins and timepoints, and the
time base calibration) and reads single planes, or rectangular regions of
planes, either one time bin at a time or as intensity images formed by
summing all time bins of each pixel.

`Becker & Hickl GmbH <http://www.becker-hickl.de/>`_ is a manufacturer of
equipment for photon counting.

:Author: `Christoph Gohlke <https://www.cgohlke.com>`_
:License: BSD 3-Clause
:Version: 2026.10.17

Quickstart
----------

Install the sdtplanes package and all dependencies::

    python -m pip install -U sdtplanes

Requirements
------------

This revision was tested with the following requirements and dependencies
(other versions may work):

- `CPython <https://www.python.org>`_ 3.10.11, 3.11.9, 3.12.9, 3.13.2 64-bit
- `NumPy <https://pypi.org/project/numpy/>`_ 2.2.4
- `Click <https://pypi.org/project/click/>`_ 8.1.8 (optional, sdt2npy)
- `Matplotlib <https://pypi.org/project/matplotlib/>`_ 3.10.1
  (optional, sdt2npy)

Notes
-----

Image rows are stored padded to multiples of 4 pixels. The time bins of a
pixel are stored contiguously, followed by the bins of the next pixel.
Channel blocks follow each other. Files with several timepoints store the
blocks of all timepoints of a channel before the next channel.

Planes are indexed in XYZTC order: the time bin (and timepoint) index
varies fastest. In intensity mode, time bins are summed in unsigned 16-bit
integer arithmetic, that is, sums larger than 65535 wrap around.

The format is described in:

1. W Becker. The bh TCSPC Handbook. 9th Edition. Becker & Hickl GmbH 2021.
   pp 879.
2. SPC_data_file_structure.h header file. Part of the Becker & Hickl
   SPCM software installation.

Examples
--------

Read the geometry and the first time bin of the first channel:

>>> sdt = SdtPlanes('image.sdt')
>>> sdt.geometry.width, sdt.geometry.height, sdt.geometry.time_bins
(128, 128, 256)
>>> len(sdt)
256
>>> sdt.asarray(0).shape
(128, 128)
>>> sdt.modulo_t.unit
'ps'
>>> sdt.close()

Read a region of an intensity image into an existing buffer:

>>> buffer = bytearray(64 * 32 * 2)
>>> with SdtPlanes('image.sdt', intensity=True) as sdt:
...     sdt.read_plane(0, buffer, x=32, y=0, w=64, h=32) is buffer
...
True

"""

from __future__ import annotations

__version__ = '2026.10.17'

__all__ = [
    '__version__',
    'SdtPlanes',
    'SdtHeader',
    'Geometry',
    'ModuloAxis',
    'FileInfo',
    'SetupBlock',
    'BlockType',
    'FileRevision',
    'FormatError',
    'read_header',
    'read_plane',
    'read_stack',
    'padded_width',
]

import dataclasses
import io
import os
import re
import zipfile
import zlib
from typing import TYPE_CHECKING

import numpy

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any, BinaryIO

    from numpy.typing import NDArray

    Record = list[tuple[str, str]]


class FormatError(ValueError):
    """File is not a valid SDT file or its header is truncated."""


class SdtPlanes:
    """Becker & Hickl SDT file opened for reading image planes.

    Parameters:
        arg:
            File name or open binary file.
            Open files are not closed when the instance is closed.
        intensity:
            Sum all time bins of a pixel into one intensity value.
            Cannot be changed after the file is opened.
        metadata:
            Mapping receiving scalar key/value pairs describing the file.

    """

    filename: str
    """Name of file."""

    header: numpy.recarray[Any, Any]
    """File header of type FILE_HEADER."""

    info: FileInfo
    """File info string and attributes."""

    setup: SetupBlock | None
    """Setup block."""

    measure_info: numpy.recarray[Any, Any] | None
    """First measurement description block of type MEASURE_INFO."""

    block_header: numpy.recarray[Any, Any]
    """First data block header."""

    geometry: Geometry
    """Acquisition geometry of first data block."""

    _fh: BinaryIO | None
    _close: bool
    _intensity: bool

    def __init__(
        self,
        arg: str | os.PathLike[Any] | BinaryIO,
        /,
        *,
        intensity: bool = False,
        metadata: MutableMapping[str, Any] | None = None,
    ) -> None:
        self._intensity = bool(intensity)
        if isinstance(arg, (str, os.PathLike)):
            self.filename = os.fspath(arg)
            fh: BinaryIO = open(arg, 'rb')  # noqa: SIM115
            self._close = True
        else:
            if not hasattr(arg, 'seek'):
                raise TypeError(f'{type(arg)!r} is not a seekable file')
            self.filename = ''
            fh = arg
            self._close = False
        self._fh = fh
        try:
            hdr = read_header(fh, metadata)
            if hdr.block_type.compress:
                data = inflate_block(fh, hdr.block_header, hdr.start)
                if self._close:
                    fh.close()
                self._fh = io.BytesIO(data)
                self._close = True
                hdr.geometry = dataclasses.replace(hdr.geometry, data_offset=0)
        except Exception:
            self.close()
            raise
        self.header = hdr.header
        self.info = hdr.info
        self.setup = hdr.setup
        self.measure_info = hdr.measure_info
        self.block_header = hdr.block_header
        self.geometry = hdr.geometry

    @property
    def intensity(self) -> bool:
        """Time bins are summed into intensity planes."""
        return self._intensity

    @property
    def closed(self) -> bool:
        """File is closed."""
        return self._fh is None

    @property
    def size_x(self) -> int:
        return self.geometry.width

    @property
    def size_y(self) -> int:
        return self.geometry.height

    @property
    def size_z(self) -> int:
        return 1

    @property
    def size_t(self) -> int:
        """Length of T axis: timepoints, times time bins if not intensity."""
        if self._intensity:
            return self.geometry.timepoints
        return self.geometry.time_bins * self.geometry.timepoints

    @property
    def size_c(self) -> int:
        return self.geometry.channels

    @property
    def dimension_order(self) -> str:
        return 'XYZTC'

    @property
    def dtype(self) -> numpy.dtype[Any]:
        """Data type of samples in planes."""
        return numpy.dtype('<u2')

    @property
    def shape(self) -> tuple[int, int, int, int]:
        """Shape of image stack in CTYX order."""
        return (self.size_c, self.size_t, self.size_y, self.size_x)

    @property
    def modulo_t(self) -> ModuloAxis | None:
        """Lifetime histogram sub-axis of T axis, or None in intensity mode."""
        if self._intensity:
            return None
        return ModuloAxis.from_geometry(self.geometry)

    def read_plane(
        self,
        index: int,
        /,
        out: Any = None,
        *,
        x: int = 0,
        y: int = 0,
        w: int | None = None,
        h: int | None = None,
    ) -> Any:
        """Return plane or region of plane as 16-bit little-endian samples.

        Parameters:
            index:
                Plane index in range [0, len(self)).
            out:
                Writable buffer of at least w*h*2 bytes receiving samples.
                By default, a new bytearray is returned.
            x, y, w, h:
                Region of plane to read. By default, the whole plane.

        """
        return read_plane(
            self._filehandle(),
            self.geometry,
            index,
            out,
            intensity=self._intensity,
            x=x,
            y=y,
            w=w,
            h=h,
        )

    def asarray(
        self,
        index: int | None = None,
        /,
        *,
        x: int = 0,
        y: int = 0,
        w: int | None = None,
        h: int | None = None,
    ) -> NDArray[Any]:
        """Return plane or all planes as numpy array.

        Parameters:
            index:
                Plane index. By default, return all planes in CTYX order.
            x, y, w, h:
                Region of planes to read. By default, the whole planes.

        """
        if index is None:
            return read_stack(
                self._filehandle(),
                self.geometry,
                intensity=self._intensity,
                x=x,
                y=y,
                w=w,
                h=h,
            )
        x, y, w, h = self.geometry.region(x, y, w, h)
        buffer = self.read_plane(index, x=x, y=y, w=w, h=h)
        return numpy.frombuffer(buffer, dtype='<u2').reshape(h, w)

    def close(self) -> None:
        """Close file handle if it was opened by this instance."""
        if self._fh is not None and self._close:
            self._fh.close()
        self._fh = None

    def _filehandle(self) -> BinaryIO:
        if self._fh is None:
            raise ValueError('I/O operation on closed SDT file')
        return self._fh

    def __len__(self) -> int:
        return self.geometry.plane_count(self._intensity)

    def __enter__(self) -> SdtPlanes:
        return self

    def __exit__(self, exc_type: Any, exc_value: Any, traceback: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        filename = os.path.split(self.filename)[-1]
        return f'{self.__class__.__name__}({filename!r})'

    def __str__(self) -> str:
        return indent(
            repr(self),
            FileRevision(self.header.revision),
            record_str('header', self.header),
            indent('info:', self.info.strip()),
            record_str('measure_info', self.measure_info),
            record_str('block_header', self.block_header),
            BlockType(self.block_header.block_type),
            indent('geometry:', *self.geometry.lines()),
            f'intensity: {self._intensity}',
            f'shape: {self.shape}',
            indent('setup:', self.setup),
        )


class SdtHeader:
    """Records read from SDT file header.

    Returned by :py:func:`read_header`.

    """

    __slots__ = (
        'header',
        'start',
        'info',
        'setup',
        'measure_info',
        'block_header',
        'block_type',
        'geometry',
    )

    start: int
    header: numpy.recarray[Any, Any]
    info: FileInfo
    setup: SetupBlock | None
    measure_info: numpy.recarray[Any, Any] | None
    block_header: numpy.recarray[Any, Any]
    block_type: BlockType
    geometry: Geometry

    def __init__(self, **kwargs: Any) -> None:
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.geometry}>'


@dataclasses.dataclass(frozen=True)
class Geometry:
    """Acquisition geometry of SDT image data block."""

    width: int
    """Number of pixels in image row."""

    height: int
    """Number of image rows."""

    channels: int
    """Number of spectral (routing) channels."""

    time_bins: int
    """Number of time bins in lifetime histogram."""

    timepoints: int = 1
    """Number of frames in time series."""

    time_base_numerator: float = 0.0
    """TAC range in s (MEASURE_INFO.tac_r)."""

    time_base_denominator: float = 1.0
    """TAC gain (MEASURE_INFO.tac_g)."""

    data_offset: int = 0
    """Position of histogram data in file."""

    bytes_per_pixel = 2

    def __post_init__(self) -> None:
        for name in ('width', 'height', 'channels', 'time_bins', 'timepoints'):
            if getattr(self, name) < 1:
                raise ValueError(f'{name}={getattr(self, name)} < 1')
        if self.data_offset < 0:
            raise ValueError(f'data_offset={self.data_offset} < 0')

    @property
    def padded_width(self) -> int:
        """Number of pixels in image row on disk."""
        return padded_width(self.width)

    @property
    def plane_size(self) -> int:
        """Number of bytes of all time bins of one channel and timepoint."""
        return (
            self.padded_width
            * self.height
            * self.time_bins
            * self.bytes_per_pixel
        )

    @property
    def time_base(self) -> float:
        """TAC range divided by TAC gain in ns."""
        return 1e9 * self.time_base_numerator / self.time_base_denominator

    @property
    def time_step(self) -> float:
        """Duration of one time bin in ps."""
        return self.time_base * 1000 / self.time_bins

    def plane_count(self, intensity: bool = False) -> int:
        """Return number of planes."""
        if intensity:
            return self.channels * self.timepoints
        return self.channels * self.time_bins * self.timepoints

    def plane_position(
        self, index: int, intensity: bool = False
    ) -> tuple[int, int]:
        """Return data block and time bin of plane.

        Raise IndexError if index is out of range.

        """
        count = self.plane_count(intensity)
        if not 0 <= index < count:
            raise IndexError(f'plane index {index} out of range [0, {count})')
        if intensity:
            return index, 0
        block, timebin = divmod(index, self.time_bins)
        return block, timebin

    def region(
        self, x: int, y: int, w: int | None, h: int | None, /
    ) -> tuple[int, int, int, int]:
        """Return validated region of plane.

        Width and height default to the remainder of the plane.
        Raise ValueError if the region is empty or exceeds the plane.

        """
        if w is None:
            w = self.width - x
        if h is None:
            h = self.height - y
        if (
            x < 0
            or y < 0
            or w < 1
            or h < 1
            or x + w > self.width
            or y + h > self.height
        ):
            raise ValueError(
                f'invalid region {x=}, {y=}, {w=}, {h=} '
                f'of {self.width}x{self.height} plane'
            )
        return x, y, w, h

    def lines(self) -> list[str]:
        return [
            f'{field.name}: {getattr(self, field.name)}'
            for field in dataclasses.fields(self)
        ] + [
            f'padded_width: {self.padded_width}',
            f'time_base: {self.time_base} ns',
        ]


@dataclasses.dataclass(frozen=True)
class ModuloAxis:
    """Sub-axis of the T axis holding lifetime histogram bins."""

    step: float
    """Duration of time bin."""

    end: float
    """Start of last time bin."""

    start: float = 0.0
    type: str = 'lifetime'
    type_description: str = 'TCSPC'
    parent_type: str = 'spectra'
    unit: str = 'ps'

    @classmethod
    def from_geometry(cls, geometry: Geometry, /) -> ModuloAxis:
        """Return lifetime sub-axis for geometry."""
        step = geometry.time_step
        return cls(step=step, end=step * (geometry.time_bins - 1))


class FileInfo(str):
    """File info string and attributes.

    Parameters:
        value: File content from FILE_HEADER info_offs and info_length.

    """

    id: str
    """Identification."""

    def __init__(self, value: str, /) -> None:
        str.__init__(self)
        if not (
            value.startswith('*IDENTIFICATION')
            and value.strip().endswith('*END')
        ):
            raise FormatError('invalid SDT file info')

        for line in value.splitlines()[1:-1]:
            if ':' not in line:
                continue
            key, val = line.split(':', 1)
            setattr(self, key.strip().lower(), val.strip())


class SetupBlock:
    """Setup block ascii and binary data.

    Parameters:
        value: File content from FILE_HEADER setup_offs and setup_length.

    """

    ascii: str
    """ASCII data."""

    binary: bytes
    """Binary data."""

    parameters: dict[str, Any]
    """Values of '#SP [KEY,TYPE,VALUE]' system parameters in ASCII data."""

    _pattern = re.compile(r'#(?:SP|DI|PR|MP)\s*\[(\w+),(\w+),([^\]]*)\]')

    def __init__(self, value: bytes, /) -> None:
        if not (value.startswith(b'*SETUP') and b'*END' in value):
            raise FormatError('invalid SDT setup block')

        self.binary = b''
        i = value.find(b'BIN_PARA_BEGIN')
        if i >= 0:
            self.ascii = value[:i].decode('windows-1250')
            self.binary = value[i:]
        else:
            self.ascii = value.decode('windows-1250')

        self.parameters = {}
        for key, kind, val in self._pattern.findall(self.ascii):
            self.parameters[key] = setup_value(kind, val)

    def get(self, key: str, default: Any = None, /) -> Any:
        """Return value of system parameter."""
        return self.parameters.get(key, default)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}>'

    def __str__(self) -> str:
        return indent(
            *(f'{key}: {value!r}' for key, value in self.parameters.items())
        )


class BlockType:
    """BLOCK_HEADER.block_type field.

    Parameters:
        value: Value of BLOCK_HEADER.block_type.

    """

    __slots__ = ('mode', 'contents', 'dtype', 'compress')

    mode: str
    """BLOCK_CREATION."""

    contents: str
    """BLOCK_CONTENT."""

    dtype: numpy.dtype[Any]
    """BLOCK_DTYPE."""

    compress: bool
    """Data is compressed."""

    def __init__(self, value: int, /) -> None:
        self.mode = BLOCK_CREATION.get(value & 0xF, 'UNKNOWN')
        self.contents = BLOCK_CONTENT.get(value & 0xF0, 'UNKNOWN')
        try:
            self.dtype = BLOCK_DTYPE[value & 0xF00]
        except KeyError as exc:
            raise FormatError(f'invalid block data type {value:#x}') from exc
        self.compress = bool(value & 0x1000)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.mode} {self.contents}>'

    def __str__(self) -> str:
        return indent(
            repr(self),
            f'dtype: {self.dtype}',
            f'compress: {self.compress}',
        )


class FileRevision:
    """FILE_HEADER.revision field.

    Parameters:
        value: Value of FILE_HEADER.revision.

    """

    __slots__ = ('revision', 'module')

    revision: int
    """Software revision."""

    module: str
    """BH module type."""

    def __init__(self, value: int, /) -> None:
        self.revision = value & 0b1111
        self.module = SPC_MODULES.get((value & 0xFF0) >> 4, 'Unknown')

    def __repr__(self) -> str:
        return (
            f'<{self.__class__.__name__} {self.module!r} rev {self.revision}>'
        )


def read_header(
    fh: BinaryIO,
    /,
    metadata: MutableMapping[str, Any] | None = None,
) -> SdtHeader:
    """Return records and geometry read from SDT file header.

    Parameters:
        fh:
            Open binary file positioned at start of SDT file.
        metadata:
            Mapping receiving 'time bins', 'channels', and 'time base'.

    Raises:
        FormatError: File is not an SDT file or header is truncated.
        NotImplementedError: File type or data type is not supported.

    """
    log_info('reading header')
    start = fh.tell()

    header = read_record(fh, FILE_HEADER, name='file header')
    if header.chksum != 0x55AA and header.header_valid != 0x5555:
        raise FormatError('not a SDT file')
    blocks = int(header.no_of_data_blocks)
    if blocks == 0x7FFF:
        blocks = int(header.reserved1)
    if blocks < 1:
        raise FormatError('SDT file contains no data blocks')

    # file info
    fh.seek(start + int(header.info_offs))
    info_bytes = fh.read(int(header.info_length))
    if len(info_bytes) != header.info_length:
        raise FormatError('truncated file info')
    info = FileInfo(
        info_bytes.decode('windows-1250').replace('\r\n', '\n')
    )
    try:
        if info.id not in INFO_IDS:
            raise NotImplementedError(f'{info.id!r} not supported')
    except AttributeError as exc:
        raise FormatError(f'invalid SDT file info\n{info}') from exc

    # setup block
    setup = None
    if header.setup_length:
        fh.seek(start + int(header.setup_offs))
        setup_bytes = fh.read(int(header.setup_length))
        if len(setup_bytes) != header.setup_length:
            raise FormatError('truncated setup block')
        setup = SetupBlock(setup_bytes)

    # first measurement description block
    measure_info = None
    if header.no_of_meas_desc_blocks > 0 and header.meas_desc_block_length > 0:
        fh.seek(start + int(header.meas_desc_block_offs))
        measure_info = read_record(
            fh,
            MEASURE_INFO,
            int(header.meas_desc_block_length),
            name='measurement description block',
        )

    # first data block header
    if FileRevision(header.revision).revision >= 15:
        block_header_t = BLOCK_HEADER
    else:
        block_header_t = BLOCK_HEADER_OLD
    fh.seek(start + int(header.data_block_offs))
    block_header = read_record(fh, block_header_t, name='data block header')
    block_type = BlockType(block_header.block_type)
    if block_type.dtype != numpy.dtype('<u2'):
        raise NotImplementedError(f'{block_type.dtype} data not supported')

    geometry = header_geometry(
        measure_info,
        setup,
        int(block_header.block_length),
        start + int(header.data_block_offs) + BLOCK_HEADER_LENGTH,
    )

    log_info(
        'time bins %d, channels %d, time base %g ns',
        geometry.time_bins,
        geometry.channels,
        geometry.time_base,
    )
    if metadata is not None:
        metadata['time bins'] = geometry.time_bins
        metadata['channels'] = geometry.channels
        metadata['time base'] = geometry.time_base

    return SdtHeader(
        start=start,
        header=header,
        info=info,
        setup=setup,
        measure_info=measure_info,
        block_header=block_header,
        block_type=block_type,
        geometry=geometry,
    )


def header_geometry(
    measure_info: numpy.recarray[Any, Any] | None,
    setup: SetupBlock | None,
    block_length: int,
    data_offset: int,
    /,
) -> Geometry:
    """Return geometry from measurement description and setup parameters."""

    def value(*names: str) -> int | float:
        # return first non-zero value of measure_info fields or setup keys
        for name in names:
            val: Any = 0
            if name.startswith('SP_'):
                if setup is not None:
                    val = setup.get(name, 0)
            elif measure_info is not None:
                try:
                    val = measure_info[name].item()
                except (KeyError, ValueError):
                    val = 0
            if val:
                return val
        return 0

    width = int(value('scan_x', 'image_x', 'SP_SCAN_X', 'SP_IMG_X'))
    height = int(value('scan_y', 'image_y', 'SP_SCAN_Y', 'SP_IMG_Y'))
    if width < 1 or height < 1:
        raise FormatError(f'SDT file contains no image ({width}x{height})')
    routing_x = int(value('scan_rx', 'image_rx', 'SP_SCAN_RX', 'SP_IMG_RX'))
    routing_y = int(value('scan_ry', 'image_ry', 'SP_SCAN_RY', 'SP_IMG_RY'))
    channels = max(routing_x, 1) * max(routing_y, 1)
    time_bins = int(value('adc_re', 'SP_ADC_RE'))
    if time_bins == 0:
        time_bins = 65536
    tac_r = float(value('tac_r', 'SP_TAC_R'))
    tac_g = float(value('tac_g', 'SP_TAC_G')) or 1.0

    plane_size = padded_width(width) * height * time_bins * 2
    timepoints = block_length // (channels * plane_size)
    if timepoints < 1:
        log_warning(
            f'data block length {block_length} < '
            f'{channels * plane_size} bytes of {channels} channels'
        )
        timepoints = 1

    try:
        return Geometry(
            width=width,
            height=height,
            channels=channels,
            time_bins=time_bins,
            timepoints=timepoints,
            time_base_numerator=tac_r,
            time_base_denominator=tac_g,
            data_offset=data_offset,
        )
    except ValueError as exc:
        raise FormatError(f'invalid SDT image geometry: {exc}') from exc


def read_plane(
    fh: BinaryIO,
    geometry: Geometry,
    index: int,
    /,
    out: Any = None,
    *,
    intensity: bool = False,
    x: int = 0,
    y: int = 0,
    w: int | None = None,
    h: int | None = None,
) -> Any:
    """Read plane or region of plane from SDT data block.

    Parameters:
        fh:
            Open binary file.
        geometry:
            Geometry of data block.
        index:
            Plane index in XYZTC order.
        out:
            Writable buffer of at least w*h*2 bytes, filled in place.
            By default, a new bytearray is returned.
        intensity:
            Sum all time bins of pixels in uint16 arithmetic (wrapping
            on overflow). Else return one time bin.
        x, y, w, h:
            Region of plane to read. By default, the whole plane.

    Returns:
        Buffer containing w*h unsigned 16-bit little-endian samples
        in row-major order.

    Raises:
        IndexError: Plane index out of range.
        ValueError: Invalid region or output buffer.
        OSError: File ends before the plane data.

    """
    block, timebin = geometry.plane_position(index, intensity)
    x, y, w, h = geometry.region(x, y, w, h)

    if out is None:
        out = bytearray(w * h * 2)
    dst = numpy.frombuffer(out, dtype=numpy.uint8)
    if not dst.flags.writeable:
        raise ValueError('output buffer is read-only')
    if dst.size < w * h * 2:
        raise ValueError(f'output buffer size {dst.size} < {w * h * 2}')
    dst = dst[: w * h * 2].view('<u2').reshape(h, w)

    bins = geometry.time_bins
    pixelsize = bins * geometry.bytes_per_pixel
    rowsize = geometry.padded_width * pixelsize
    fh.seek(geometry.data_offset + block * geometry.plane_size + y * rowsize)

    nbytes = w * pixelsize
    skip = x * pixelsize
    skip_row = (geometry.padded_width - x - w) * pixelsize + skip
    stack = numpy.empty((h, w, bins), '<u2') if intensity else None
    for row in range(h):
        fh.seek(skip_row if row else skip, 1)
        data = fh.read(nbytes)
        if len(data) != nbytes:
            raise OSError(
                f'plane {index} row {y + row}: '
                f'read {len(data)} of {nbytes} bytes'
            )
        rowbuf = numpy.frombuffer(data, dtype='<u2').reshape(w, bins)
        if stack is None:
            dst[row] = rowbuf[:, timebin]
        else:
            stack[row] = rowbuf

    if stack is not None:
        # uint16 accumulator wraps on overflow
        numpy.sum(stack, axis=-1, dtype=numpy.uint16, out=dst)
    return out


def read_stack(
    fh: BinaryIO,
    geometry: Geometry,
    /,
    *,
    intensity: bool = False,
    x: int = 0,
    y: int = 0,
    w: int | None = None,
    h: int | None = None,
) -> NDArray[Any]:
    """Return all planes of SDT data block as array in CTYX order.

    Data blocks are read once instead of once per time bin.
    The result equals stacking all planes returned by :py:func:`read_plane`.

    """
    x, y, w, h = geometry.region(x, y, w, h)
    bins = geometry.time_bins
    blocks = geometry.channels * geometry.timepoints
    if intensity:
        out = numpy.empty((blocks, h, w), '<u2')
    else:
        out = numpy.empty((blocks, bins, h, w), '<u2')

    # the padding of the last row is not read
    padding = bytes(
        (geometry.padded_width - geometry.width)
        * bins
        * geometry.bytes_per_pixel
    )
    nbytes = geometry.plane_size - len(padding)
    for block in range(blocks):
        fh.seek(geometry.data_offset + block * geometry.plane_size)
        data = fh.read(nbytes)
        if len(data) != nbytes:
            raise OSError(
                f'data block {block}: read {len(data)} of {nbytes} bytes'
            )
        data += padding
        array = numpy.frombuffer(data, dtype='<u2').reshape(
            geometry.height, geometry.padded_width, bins
        )[y : y + h, x : x + w]
        if intensity:
            numpy.sum(array, axis=-1, dtype=numpy.uint16, out=out[block])
        else:
            out[block] = numpy.moveaxis(array, -1, 0)

    size_t = geometry.plane_count(intensity) // geometry.channels
    return out.reshape(geometry.channels, size_t, h, w)


def inflate_block(
    fh: BinaryIO, block_header: Any, /, start: int = 0
) -> bytes:
    """Return decompressed content of zip compressed data block.

    Block offsets are relative to start, the position of the SDT file
    in the stream.

    """
    data_offs = int(block_header.data_offs)
    fh.seek(start + data_offs)
    bio = io.BytesIO(fh.read(int(block_header.next_block_offs) - data_offs))
    try:
        with zipfile.ZipFile(bio) as zf:
            return zf.read(zf.filelist[0].filename)  # data_block
    except (zipfile.BadZipFile, zlib.error, IndexError) as exc:
        raise FormatError(f'invalid compressed data block: {exc}') from exc


def padded_width(width: int, /) -> int:
    """Return image width rounded up to multiple of 4."""
    return width + (4 - width % 4) % 4


def setup_value(kind: str, value: str, /) -> Any:
    """Return typed value of setup parameter."""
    try:
        if kind in ('I', 'L', 'U'):
            return int(value)
        if kind == 'F':
            return float(value)
        if kind == 'B':
            return bool(int(value))
    except ValueError:
        log_warning(f'invalid setup parameter value {value!r} of type {kind}')
    return value.strip()


def read_record(
    fh: BinaryIO,
    record: Record,
    /,
    size: int | None = None,
    *,
    name: str = 'record',
) -> numpy.recarray[Any, Any]:
    """Return little-endian record read from current file position.

    If size is given, the record is truncated to fields fitting size bytes.

    """
    if size is None:
        dtype = numpy.dtype(record)
    else:
        dtype = record_dtype(record, size)
    dtype = dtype.newbyteorder('<')
    data = fh.read(dtype.itemsize)
    if len(data) != dtype.itemsize:
        raise FormatError(
            f'truncated {name}: read {len(data)} of {dtype.itemsize} bytes'
        )
    return numpy.rec.fromstring(  # type: ignore[call-overload]
        data, dtype=dtype, shape=1
    )[0]


FILE_HEADER: Record = [
    ('revision', 'i2'),
    ('info_offs', 'i4'),
    ('info_length', 'i2'),
    ('setup_offs', 'i4'),
    ('setup_length', 'u2'),
    ('data_block_offs', 'i4'),
    ('no_of_data_blocks', 'i2'),
    ('data_block_length', 'u4'),
    ('meas_desc_block_offs', 'i4'),
    ('no_of_meas_desc_blocks', 'i2'),
    ('meas_desc_block_length', 'i2'),
    ('header_valid', 'u2'),
    ('reserved1', 'u4'),
    ('reserved2', 'u2'),
    ('chksum', 'u2'),
]

# leading part of measurement description block up to image routing
MEASURE_INFO: Record = [
    ('time', 'S9'),
    ('date', 'S11'),
    ('mod_ser_no', 'S16'),
    ('meas_mode', 'i2'),
    ('cfd_ll', 'f4'),
    ('cfd_lh', 'f4'),
    ('cfd_zc', 'f4'),
    ('cfd_hf', 'f4'),
    ('syn_zc', 'f4'),
    ('syn_fd', 'i2'),
    ('syn_hf', 'f4'),
    ('tac_r', 'f4'),
    ('tac_g', 'i2'),
    ('tac_of', 'f4'),
    ('tac_ll', 'f4'),
    ('tac_lh', 'f4'),
    ('adc_re', 'i2'),
    ('eal_de', 'i2'),
    ('ncx', 'i2'),
    ('ncy', 'i2'),
    ('page', 'u2'),
    ('col_t', 'f4'),
    ('rep_t', 'f4'),
    ('stopt', 'i2'),
    ('overfl', 'u1'),
    ('use_motor', 'i2'),
    ('steps', 'u2'),
    ('offset', 'f4'),
    ('dither', 'i2'),
    ('incr', 'i2'),
    ('mem_bank', 'i2'),
    ('mod_type', 'S16'),
    ('syn_th', 'f4'),
    ('dead_time_comp', 'i2'),
    ('polarity_l', 'i2'),
    ('polarity_f', 'i2'),
    ('polarity_p', 'i2'),
    ('linediv', 'i2'),
    ('accumulate', 'i2'),
    ('flbck_y', 'i4'),
    ('flbck_x', 'i4'),
    ('bord_u', 'i4'),
    ('bord_l', 'i4'),
    ('pix_time', 'f4'),
    ('pix_clk', 'i2'),
    ('trigger', 'i2'),
    ('scan_x', 'i4'),
    ('scan_y', 'i4'),
    ('scan_rx', 'i4'),
    ('scan_ry', 'i4'),
    ('fifo_typ', 'i2'),
    ('epx_div', 'i4'),
    ('mod_type_code', 'u2'),
    ('mod_fpga_ver', 'u2'),
    ('overflow_corr_factor', 'f4'),
    ('adc_zoom', 'i4'),
    ('cycles', 'i4'),
    ('StopInfo', 'V60'),  # MEASURE_STOP_INFO
    ('FCSInfo', 'V38'),  # MEASURE_FCS_INFO
    ('image_x', 'i4'),
    ('image_y', 'i4'),
    ('image_rx', 'i4'),
    ('image_ry', 'i4'),
]

BLOCK_HEADER_OLD: Record = [
    ('block_no', 'i2'),
    ('data_offs', 'i4'),
    ('next_block_offs', 'i4'),
    ('block_type', 'u2'),
    ('meas_desc_block_no', 'i2'),
    ('lblock_no', 'u4'),
    ('block_length', 'u4'),
]

BLOCK_HEADER: Record = [
    ('data_offs_ext', 'u1'),
    ('next_block_offs_ext', 'u1'),
    ('data_offs', 'u4'),
    ('next_block_offs', 'u4'),
    ('block_type', 'u2'),
    ('meas_desc_block_no', 'i2'),
    ('lblock_no', 'u4'),
    ('block_length', 'u4'),
]

BLOCK_HEADER_LENGTH = 22

# Mode of creation
BLOCK_CREATION: dict[int, str] = {
    0: 'NOT_USED',
    1: 'MEAS_DATA',
    2: 'FLOW_DATA',
    3: 'MEAS_DATA_FROM_FILE',
    4: 'CALC_DATA',
    5: 'SIM_DATA',
    8: 'FIFO_DATA',
    9: 'FIFO_DATA_FROM_FILE',
}

BLOCK_CONTENT: dict[int, str] = {
    0x0: 'DECAY_BLOCK',
    0x10: 'PAGE_BLOCK',
    0x20: 'FCS_BLOCK',
    0x30: 'FIDA_BLOCK',
    0x40: 'FILDA_BLOCK',
    0x50: 'MCS_BLOCK',
    0x60: 'IMG_BLOCK',
    0x70: 'MCSTA_BLOCK',
    0x80: 'IMG_MCS_BLOCK',
    0x90: 'MOM_BLOCK',
    0xA0: 'IMG_INT_BLOCK',
    0xB0: 'IMG_WF_BLOCK',
    0xC0: 'IMG_LIFE_BLOCK',
}

# Data type
BLOCK_DTYPE: dict[int, numpy.dtype[Any]] = {
    0x000: numpy.dtype('<u2'),
    0x100: numpy.dtype('<u4'),
    0x200: numpy.dtype('<f8'),
}

INFO_IDS: dict[str, str] = {
    'SPC Setup & Data File': 'Normal mode: setup + data',
    'SPC DLL Data File': 'DLL created: no setup, only data',
    'SPC FCS Data File': (
        'FIFO mode: setup, data blocks = Decay, FCS, FIDA, FILDA & MCS '
        'curves for each used routing channel'
    ),
}

SPC_MODULES: dict[int, str] = {
    0x20: 'SPC-130',
    0x21: 'SPC-600',
    0x22: 'SPC-630',
    0x23: 'SPC-700',
    0x24: 'SPC-730',
    0x25: 'SPC-830',
    0x26: 'SPC-140',
    0x27: 'SPC-930',
    0x28: 'SPC-150',
    0x29: 'DPC-230',
    0x2A: 'SPC-130EM',
    0x2B: 'SPC-160',
    0x2E: 'SPC-150N',
    0x80: 'SPC-150NX',
    0x81: 'SPC-160X',
    0x82: 'SPC-160PCIE',
    0x83: 'SPC-130EMN',
    0x84: 'SPC-180N',
    0x85: 'SPC-180NX',
    0x86: 'SPC-180NXX',
    0x87: 'SPC-180N-USB',
    0x88: 'SPC-130IN',
    0x89: 'SPC-130INX',
    0x8A: 'SPC-130INXX',
    0x8B: 'SPC-QC-104',
    0x8C: 'SPC-QC-004',
}


def record_dtype(record: Record, size: int, /) -> numpy.dtype[Any]:
    """Return numpy dtype for record not exceeding size bytes."""
    if size <= 0:
        raise ValueError(f'invalid record {size=}')
    fields = len(record)
    dtype = numpy.dtype(record)
    while dtype.itemsize > size and fields > 0:
        fields -= 1
        dtype = numpy.dtype(record[:fields])
    return dtype


def record_str(name: str, record: numpy.recarray[Any, Any] | None) -> str:
    """Return numpy record formatted as string."""
    if record is None:
        return f'{name}: None'
    lines = []
    for descr in record.dtype.descr:
        key, dtype = descr[:2]
        if not key:
            continue
        value = record[key]
        if dtype.startswith('|S'):
            lines.append(f'{key}: {bytes(stripnull(value))!r}')
        elif dtype.startswith('|V'):
            lines.append(f'{key}: <{dtype[2:]} bytes>')
        else:
            lines.append(f'{key}: {value}')
    return indent(f'{name}:', *lines)


def indent(*args: Any) -> str:
    """Return joined string representations of objects with indented lines."""
    text = '\n'.join(str(arg) for arg in args)
    return '\n'.join(
        ('  ' + line if line else line) for line in text.splitlines() if line
    )[2:]


def stripnull(string: bytes, /) -> bytes:
    r"""Return string truncated at first null character.

    >>> stripnull(b'bytes\x00\x00')
    b'bytes'

    """
    i = string.find(b'\x00')
    return string if i < 0 else string[:i]


def log_info(msg: object, *args: object, **kwargs: Any) -> None:
    """Log message with level INFO."""
    import logging

    logging.getLogger(__name__).info(msg, *args, **kwargs)


def log_warning(msg: object, *args: object, **kwargs: Any) -> None:
    """Log message with level WARNING."""
    import logging

    logging.getLogger(__name__).warning(msg, *args, **kwargs)


if __name__ == '__main__':
    import doctest

    doctest.testmod(optionflags=doctest.ELLIPSIS)

    assert numpy.dtype(FILE_HEADER).itemsize == 42  # BH_HDR_LENGTH
    assert numpy.dtype(BLOCK_HEADER_OLD).itemsize == BLOCK_HEADER_LENGTH
    assert numpy.dtype(BLOCK_HEADER).itemsize == BLOCK_HEADER_LENGTH

# mypy: disable-error-code="no-any-return"

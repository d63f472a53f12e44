"""Shared pytest fixtures for sdtplanes tests.

Synthetic SDT files are written with the record definitions of sdtplanes.
Image rows are padded on disk with 0xFFFF samples so that padding leaking
into planes is detected.
"""

import io
import zipfile

import numpy
import pytest

from sdtplanes.sdtplanes import (
    BLOCK_HEADER,
    BLOCK_HEADER_OLD,
    FILE_HEADER,
    MEASURE_INFO,
    padded_width,
)

INFO = (
    b'*IDENTIFICATION\r\n'
    b'  ID        : SPC Setup & Data File\r\n'
    b'  Title     : sdtplanes test\r\n'
    b'  Version   : 1  849 M\r\n'
    b'*END\r\n\r\n'
)

PAD = 0xFFFF


def record_bytes(record, **values):
    """Return little-endian bytes of record with given field values."""
    rec = numpy.zeros(1, dtype=numpy.dtype(record).newbyteorder('<'))
    for key, value in values.items():
        rec[key] = value
    return rec.tobytes()


def synthetic_data(blocks, height, width, bins, seed=0):
    """Return distinct uint16 samples in (blocks, height, width, bins)."""
    size = blocks * height * width * bins
    data = (numpy.arange(size, dtype=numpy.int64) * 7 + seed + 1) % 0xFFFF
    return data.astype(numpy.uint16).reshape(blocks, height, width, bins)


def sdt_bytes(
    data,
    channels=1,
    *,
    tac_r=5e-8,
    tac_g=4,
    info=INFO,
    setup=None,
    measure=True,
    revision=0x24C,
    compress=False,
    header_valid=0x5555,
    chksum=0x55AA,
):
    """Return content of SDT file containing data.

    Data are of shape (channels * timepoints, height, width, bins).

    """
    blocks, height, width, bins = data.shape
    padded = numpy.full(
        (blocks, height, padded_width(width), bins), PAD, dtype='<u2'
    )
    padded[:, :, :width] = data
    block = padded.tobytes()

    info_offs = 42
    setup_offs = info_offs + len(info)
    setup = b'' if setup is None else setup
    meas_offs = setup_offs + len(setup)
    if measure:
        measure_info = record_bytes(
            MEASURE_INFO,
            tac_r=tac_r,
            tac_g=tac_g,
            adc_re=bins,
            scan_x=width,
            scan_y=height,
            scan_rx=channels,
            scan_ry=1,
        )
    else:
        measure_info = b''
    data_block_offs = meas_offs + len(measure_info)
    data_offs = data_block_offs + 22

    block_type = 0x61  # IMG_BLOCK, MEAS_DATA, uint16
    payload = block
    if compress:
        block_type |= 0x1000
        bio = io.BytesIO()
        with zipfile.ZipFile(bio, 'w', zipfile.ZIP_DEFLATED) as zf:
            zf.writestr('data_block', block)
        payload = bio.getvalue()

    header = record_bytes(
        FILE_HEADER,
        revision=revision,
        info_offs=info_offs,
        info_length=len(info),
        setup_offs=setup_offs,
        setup_length=len(setup),
        data_block_offs=data_block_offs,
        no_of_data_blocks=1,
        data_block_length=len(block),
        meas_desc_block_offs=meas_offs,
        no_of_meas_desc_blocks=1 if measure else 0,
        meas_desc_block_length=len(measure_info),
        header_valid=header_valid,
        chksum=chksum,
    )
    block_header = record_bytes(
        BLOCK_HEADER if revision & 0xF >= 15 else BLOCK_HEADER_OLD,
        data_offs=data_offs,
        next_block_offs=data_offs + len(payload),
        block_type=block_type,
        block_length=len(block),
    )
    return b''.join(
        (header, info, setup, measure_info, block_header, payload)
    )


@pytest.fixture
def make_sdt(tmp_path):
    """Return factory writing synthetic SDT files to temporary directory."""
    counter = iter(range(1000))

    def factory(data, channels=1, **kwargs):
        filename = tmp_path / f'test{next(counter)}.sdt'
        filename.write_bytes(sdt_bytes(data, channels, **kwargs))
        return filename

    return factory

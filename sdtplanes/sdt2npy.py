#!/usr/bin/env python3
# sdtplanes/sdt2npy.py

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

"""Convert image planes in SDT files to NumPy NPY files.

This Python script reads fluorescence lifetime images from Becker & Hickl
SDT files, prints their geometry, saves all planes as NumPy arrays in CTYX
order, and plots the intensity image of the first channel.

For command line usage run::

    python -m sdtplanes.sdt2npy --help

For example, to save the summed intensity images in `file.sdt` to
`file.sdt.npy` without plotting::

    sdt2npy --intensity --no-plot file.sdt

This script depends on Python >= 3.10 and the sdtplanes, matplotlib, numpy,
and click libraries, which can be installed with::

    python -m pip install sdtplanes matplotlib click

"""

import os
import sys

import numpy


def sdtconvert(filename, output=None, *, intensity=False):
    """Save all planes of SDT file to NPY file and return geometry."""
    from sdtplanes import SdtPlanes

    if output is None:
        output = filename + '.npy'
    with SdtPlanes(filename, intensity=intensity) as sdt:
        numpy.save(output, sdt.asarray())
        return sdt.geometry


def intensity_image(filename, channel=0):
    """Return intensity image of channel and first timepoint of SDT file."""
    from sdtplanes import SdtPlanes

    with SdtPlanes(filename, intensity=True) as sdt:
        return sdt.asarray(channel * sdt.size_t)


def intensity_plot(image, title=None, ax=None):
    """Plot intensity image using matplotlib."""
    from matplotlib import pyplot

    if ax is None:
        fig, ax = pyplot.subplots()
    else:
        fig = None
    ax.set(title=title or 'Intensity', xlabel='x', ylabel='y')
    ax.imshow(image, cmap='gray', interpolation='nearest')
    if fig is not None:
        pyplot.show()


def askopenfilename(**kwargs):
    """Return file name(s) from Tkinter's file open dialog."""
    from tkinter import Tk, filedialog

    root = Tk()
    root.withdraw()
    root.update()
    filenames = filedialog.askopenfilename(**kwargs)
    root.destroy()
    return filenames


def main(argv=None):
    """Command line usage main function."""
    import click

    from sdtplanes import __version__

    @click.version_option(version=__version__)
    @click.command(help='Convert image planes in SDT files to NPY files.')
    @click.option(
        '--intensity/--lifetime',
        default=False,
        help='Sum time bins into intensity images.',
    )
    @click.option(
        '--plot/--no-plot', default=True, help='Plot intensity images.'
    )
    @click.option(
        '--convert/--no-convert',
        default=True,
        help='Convert SDT to NPY files.',
    )
    @click.argument('files', nargs=-1, type=click.Path(dir_okay=False))
    def run(files, intensity, plot, convert):
        if not files:
            files = askopenfilename(
                title='Select SDT files',
                multiple=True,
                filetypes=[('SDT files', '*.SDT')],
            )
        if not files:
            msg = 'missing FILES'
            raise click.UsageError(msg)
        for filename in files:
            name = os.path.split(filename)[-1]
            if convert:
                geometry = sdtconvert(filename, intensity=intensity)
                click.echo(
                    f'{name}: {geometry.width}x{geometry.height}, '
                    f'{geometry.channels} channels, '
                    f'{geometry.time_bins} time bins, '
                    f'{geometry.timepoints} timepoints, '
                    f'{geometry.time_step:.3f} ps per bin'
                )
            if plot:
                intensity_plot(intensity_image(filename), title=name)

    run(args=argv)


if __name__ == '__main__':
    sys.exit(main())

# mypy: allow-untyped-defs, allow-untyped-calls

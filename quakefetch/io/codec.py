# -*- coding: utf-8 -*-
"""
Module to decode downloaded miniSEED data and write waveform files.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

from __future__ import annotations

import io
import logging
import pathlib
import warnings

from obspy import Stream, read
from obspy.io.mseed import ObsPyMSEEDError

import quakefetch.util as util


warnings.filterwarnings(
    "ignore",
    message=(
        "The encoding specified in trace.stats.mseed.encoding does not match the dtype "
        "of the data.\nA suitable encoding will be chosen."
    ),
)

FILE_EXTENSIONS = {"MSEED": "mseed", "SAC": "SAC"}


class WaveformCodec:
    """
    Decodes miniSEED payloads returned by the dataselect service into an
    `obspy.Stream`, and writes waveform files.

    Parameters
    ----------
    merge : bool, optional
        Whether to merge contiguous traces for each channel - e.g. the pieces of a
        request that was split in time - when the data is collected. (Default True)

    """

    def __init__(self, merge: bool = True) -> None:
        """Instantiate the WaveformCodec object."""

        self.merge = merge

    def read(self, data: bytes) -> Stream:
        """
        Decode a miniSEED payload.

        Parameters
        ----------
        data:
            Raw miniSEED records.

        Returns
        -------
         :
            Decoded waveform data.

        """

        return read(io.BytesIO(data), format="MSEED")

    def unpack(self, stream: Stream | None, data: bytes) -> Stream | None:
        """
        Decode a miniSEED payload and add it to `stream`. Payloads that cannot be
        decoded are logged and skipped.

        Parameters
        ----------
        stream:
            Waveform data collected so far, or None.
        data:
            Raw miniSEED records.

        Returns
        -------
         :
            `stream` with the decoded traces added (a new Stream if `stream` was None),
            or `stream` unchanged if the payload could not be decoded.

        """

        try:
            st = self.read(data)
        except (ObsPyMSEEDError, TypeError, ValueError) as e:
            logging.warning(f"\tCould not decode miniSEED data: {e}")
            return stream

        logging.debug(f"\t\tDecoded {len(st)} traces")
        if stream is None:
            stream = Stream()
        stream += st

        return stream

    def collect(self, stream: Stream | None) -> Stream | None:
        """Finalise the collected waveform data, merging it by channel if requested."""

        if stream is None or not self.merge:
            return stream

        return util.merge_stream(stream)

    def write(
        self, stream: Stream, path: str | pathlib.Path, file_format: str = "SAC"
    ) -> list:
        """
        Write each trace of a Stream to its own file, named
        "NET.STA.LOC.CHA.<starttime>.<ext>".

        Parameters
        ----------
        stream:
            Waveform data to write.
        path:
            Directory to write the files to; created if it does not exist.
        file_format:
            Any file format supported by ObsPy, e.g. "SAC" (default), "MSEED".

        Returns
        -------
         :
            Paths of the files written.

        """

        path = pathlib.Path(path)
        path.mkdir(exist_ok=True, parents=True)
        file_format = file_format.upper()
        ext = FILE_EXTENSIONS.get(file_format, file_format.lower())

        written = []
        for tr in stream:
            starttime = tr.stats.starttime.strftime("%Y.%j.%H.%M.%S")
            fname = util.unique_filename(path / f"{tr.id}.{starttime}.{ext}")
            tr.write(str(fname), format=file_format)
            logging.info(
                f"\tWriting data to {fname} [{util.data_size(tr.data.nbytes)}]"
            )
            written.append(fname)

        return written

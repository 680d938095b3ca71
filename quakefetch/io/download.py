# -*- coding: utf-8 -*-
"""
Module to download the waveform data described by a request document, one data center
request at a time.

After each data center request has been attempted, it is marked as done and the whole
request document is written back to the request file. If a download is interrupted, it
can be resumed by reading the request file back in: requests already marked as done are
skipped.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

from __future__ import annotations

import logging
import pathlib

from obspy import Stream, UTCDateTime

import quakefetch.util as util
from quakefetch.io.codec import WaveformCodec
from quakefetch.io.transport import Result, Transport
from quakefetch.request.document import DataCenterRequest, RequestDocument


# Outcomes of a data center request
OK = "ok"
EMPTY = "empty"
ERROR = "error"


def classify(result: Result | None) -> str:
    """
    Classify the result of a data center request.

    Parameters
    ----------
    result:
        Result of the request, or None if the request could not be sent.

    Returns
    -------
     :
        OK if data was returned, EMPTY if the data center reported that no data was
        available (HTTP 204 / 404), or ERROR for any other failure.

    """

    if result is None:
        return ERROR
    if result.is_ok:
        return OK
    if result.is_empty:
        return EMPTY
    return ERROR


class Downloader:
    """
    Downloads the data for each data center request in a request document, in turn,
    checkpointing the document to file after each one.

    Parameters
    ----------
    transport : :class:`~quakefetch.io.transport.Transport` object, optional
        Used to send requests. A new Transport is created if not given.
    codec : :class:`~quakefetch.io.codec.WaveformCodec` object, optional
        Used to decode downloaded data. A new WaveformCodec is created if not given.
    prefix : str, optional
        Prefix for miniSEED output files. (Default "fdsnws")
    save_files : bool, optional
        Whether to save the data returned for each request to a miniSEED file named
        "<prefix>.<YYYY.MM.DD.HH.MM.SS>.<data center>.mseed". (Default True)
    unpack_data : bool, optional
        Whether to decode the data returned into an `obspy.Stream`. (Default False)
    output_dir : str or `pathlib.Path` object, optional
        Directory to save miniSEED files in. (Default: current directory)
    mark_failed_done : bool, optional
        Whether to mark a request as done when it fails (e.g. a network error), so that
        it is not tried again when resuming. Requests that return data, or for which no
        data is available, are always marked as done. (Default True)

    Attributes
    ----------
    outcomes : list of tuple
        (data center, outcome) for each request attempted by the last call to
        :func:`~quakefetch.io.download.Downloader.download`.

    """

    def __init__(
        self,
        transport: Transport | None = None,
        codec: WaveformCodec | None = None,
        prefix: str = "fdsnws",
        save_files: bool = True,
        unpack_data: bool = False,
        output_dir: str | pathlib.Path | None = None,
        mark_failed_done: bool = True,
    ) -> None:
        """Instantiate the Downloader object."""

        self.transport = transport if transport is not None else Transport()
        self.codec = codec if codec is not None else WaveformCodec()
        self.prefix = prefix
        self.save_files = save_files
        self.unpack_data = unpack_data
        self.output_dir = pathlib.Path(output_dir) if output_dir else pathlib.Path(".")
        self.mark_failed_done = mark_failed_done

        self.outcomes = []

    def __str__(self) -> str:
        """Return short summary string of the Downloader object."""

        return (
            "quakefetch Downloader object"
            f"\n\tSave miniSEED files\t:\t{self.save_files}"
            f"\n\tFile prefix\t\t:\t{self.output_dir / self.prefix}"
            f"\n\tUnpack data\t\t:\t{self.unpack_data}"
            f"\n\tMark failed as done\t:\t{self.mark_failed_done}"
        )

    @util.timeit("info")
    def download(
        self, document: RequestDocument, filename: str | pathlib.Path
    ) -> Stream | None:
        """
        Download the data for every data center request not yet marked as done.

        Parameters
        ----------
        document:
            Request document to download. The `done` flag of each request is updated.
        filename:
            Request file to checkpoint the document to after each request.

        Returns
        -------
         :
            Waveform data for all requests, merged by channel, if `unpack_data` is set
            and any data was decoded; otherwise None.

        """

        logging.info(util.log_spacer)
        logging.info(
            f"\tDownloading {len(document.pending)} of {len(document.requests)} "
            f"requests - est. {util.data_size(document.size)}"
        )
        logging.info(util.log_spacer)

        self.outcomes = []
        stream = None
        n = len(document.requests)
        for i, request in enumerate(document.requests):
            if request.done:
                continue
            logging.info(f"\tData Center: {request.datacenter} [{i + 1}/{n}]")

            try:
                result = self.send(request)
            except util.MissingDataSelectURLException as e:
                logging.warning(f"\t{e}")
                result = None
            outcome = classify(result)

            if outcome == OK:
                try:
                    stream = self._handle_data(request, result, stream)
                except OSError as e:
                    logging.warning(f"\tCould not save data: {e}")
                    outcome = ERROR
            elif outcome == EMPTY:
                logging.info("\tNo data available")
            elif result is not None:
                logging.info(f"\t{result.error_message}")

            self.outcomes.append((request.datacenter, outcome))
            if outcome != ERROR or self.mark_failed_done:
                request.done = True
            document.write_to_file(filename)
            logging.debug(f"\tCheckpoint written to {filename}")

        outcomes = [outcome for _, outcome in self.outcomes]
        logging.info(
            f"\tRequests: {outcomes.count(OK)} with data, {outcomes.count(EMPTY)} "
            f"without data, {outcomes.count(ERROR)} failed"
        )

        if stream is None:
            return None

        return self.codec.collect(stream)

    def send(self, request: DataCenterRequest) -> Result:
        """
        POST the lines of a data center request to its dataselect service.

        Parameters
        ----------
        request:
            Data center request to send.

        Returns
        -------
         :
            Result of the request.

        Raises
        ------
        MissingDataSelectURLException
            If the request has no DATASELECTSERVICE url, or no request lines.

        """

        url = request.dataselect_url
        if url is None or not request.lines:
            raise util.MissingDataSelectURLException(request.datacenter)

        logging.debug(
            f"\tPOST {len(request.lines)} lines to {url} - est. "
            f"{util.data_size(request.size)}"
        )

        return self.transport.post(url, request.body)

    def _handle_data(
        self, request: DataCenterRequest, result: Result, stream: Stream | None
    ) -> Stream | None:
        """Save and/or decode the data returned for a request."""

        if self.save_files:
            date = UTCDateTime.now().strftime("%Y.%m.%d.%H.%M.%S")
            result.write_to_file(
                self.output_dir / f"{self.prefix}.{date}.{request.name}.mseed"
            )
        else:
            logging.info(f"\tReceived {util.data_size(len(result))}")

        if self.unpack_data:
            stream = self.codec.unpack(stream, result.data)

        return stream

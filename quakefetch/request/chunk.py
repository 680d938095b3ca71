# -*- coding: utf-8 -*-
"""
Module to split a request document into requests that are each small enough to be sent
to a data center in one go.

Request lines are batched in order, and a batch is closed before it would grow beyond
the maximum request size. A single line that on its own exceeds the maximum is instead
split into a number of shorter, contiguous time windows, each sent as a separate
request.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

from __future__ import annotations

import logging
import math

import quakefetch.util as util
from quakefetch.request.document import (
    DataCenterRequest,
    RequestDocument,
    RequestLine,
)
from quakefetch.request.size import estimate_size


def chunk_document(document: RequestDocument, max_bytes: int) -> RequestDocument:
    """
    Split the requests in a document so that the estimated size of each request is at
    most `max_bytes`. The document is modified in place.

    Lines are batched in order; a batch is closed when adding the next line would take
    it over `max_bytes`. Lines larger than `max_bytes` on their own are split in time,
    see :func:`~quakefetch.request.chunk.time_split`. Time windows are whole seconds,
    so a line may be split into more than ceil(size / max_bytes) windows: when rounding
    up would take a window over `max_bytes`, windows are added until each one fits.

    Parameters
    ----------
    document:
        Request document to split.
    max_bytes:
        Maximum estimated size of each request, in bytes.

    Returns
    -------
     :
        The same document, with its requests replaced by the split requests.

    Raises
    ------
    InvalidChunkSizeException
        If `max_bytes` is not a positive number.

    """

    if max_bytes <= 0:
        raise util.InvalidChunkSizeException(max_bytes)

    chunks = []
    for request in document.requests:
        chunks.extend(chunk_request(request, max_bytes))

    logging.debug(
        f"\tSplit {len(document.requests)} requests into {len(chunks)} requests of at "
        f"most {util.data_size(max_bytes)}"
    )
    document.requests = chunks

    return document


def chunk_request(request: DataCenterRequest, max_bytes: int) -> list:
    """
    Split the lines of a single data center request into batches.

    Parameters
    ----------
    request:
        Request to split.
    max_bytes:
        Maximum estimated size of each batch, in bytes.

    Returns
    -------
     :
        New requests to the same data center, in order. Each has a copy of the service
        urls of `request` and is not yet done.

    """

    if max_bytes <= 0:
        raise util.InvalidChunkSizeException(max_bytes)

    chunks = []
    batch = request.empty_copy()
    total = 0
    for line in request.lines:
        size = line.size
        if size > max_bytes:
            if batch.lines:
                chunks.append(batch)
                batch = request.empty_copy()
                total = 0
            logging.debug(
                f"\t\tSplitting by time: {util.data_size(size)} > "
                f"{util.data_size(max_bytes)}\n\t\t{line}"
            )
            chunks.extend(time_split(line, request, size, max_bytes))
            continue

        # Close the batch before it would grow beyond max_bytes
        if batch.lines and total + size > max_bytes:
            chunks.append(batch)
            batch = request.empty_copy()
            total = 0

        batch.lines.append(line)
        total += size

    if batch.lines:
        chunks.append(batch)

    return chunks


def time_split(
    line: RequestLine, request: DataCenterRequest, size: int, max_bytes: int
) -> list:
    """
    Split a request line into contiguous, non-overlapping time windows, each sent as a
    separate request.

    The number of windows is ceil(size / max_bytes); every window has the same length,
    ceil(duration / n) seconds, except the last, which ends at the original end time.
    If rounding up to whole seconds takes a window over `max_bytes`, windows are added
    until it fits (or the windows are 1 s long).

    Parameters
    ----------
    line:
        Request line to split.
    request:
        Request the line belongs to; its service urls are copied to each new request.
    size:
        Estimated size of `line`, in bytes.
    max_bytes:
        Maximum estimated size of each request, in bytes.

    Returns
    -------
     :
        Single-line requests, in chronological order.

    """

    n = math.ceil(size / max_bytes)
    duration = line.endtime - line.starttime
    dt = math.ceil(duration / n)
    while dt > 1 and estimate_size(line.channel, dt) > max_bytes:
        n += 1
        dt = math.ceil(duration / n)

    chunks = []
    starttime = line.starttime
    while starttime < line.endtime:
        endtime = min(starttime + dt, line.endtime)
        chunk = request.empty_copy()
        chunk.lines.append(line.copy(starttime=starttime, endtime=endtime))
        chunks.append(chunk)
        starttime = endtime

    return chunks

# -*- coding: utf-8 -*-
"""
Module that supplies various utility functions and classes.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

import logging
import pathlib
import sys
import time
import warnings
from datetime import datetime
from functools import wraps

from obspy import Stream


log_spacer = "=" * 110

TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def logger(request_file, log, loglevel="info"):
    """
    Send log messages to stdout and, optionally, to a log file kept in a "logs"
    directory beside the request file.

    Parameters
    ----------
    request_file : str or `pathlib.Path` object
        Request file being written or downloaded. The log file is named after it,
        e.g. "logs/fdsnws_2020-01-01_00-00-00.log" for "fdsnws.request".
    log : bool
        Whether to also write a log file.
    loglevel : str, optional
        "info" (default) or "debug", which adds the size estimate and url of each
        request and the checkpoint writes.

    Returns
    -------
    logfile : `pathlib.Path` object or None
        Log file written to, if any.

    """

    level = logging.DEBUG if loglevel == "debug" else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]

    logfile = None
    if log:
        request_file = pathlib.Path(request_file)
        now = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        logfile = request_file.parent / "logs" / f"{request_file.stem}_{now}.log"
        logfile.parent.mkdir(exist_ok=True, parents=True)
        handlers.insert(0, logging.FileHandler(str(logfile)))

    # Connection pool chatter from requests is only wanted when debugging
    logging.getLogger("urllib3").setLevel(level)
    logging.basicConfig(level=level, format="%(message)s", handlers=handlers)

    return logfile


def format_time(timestamp, precision=3):
    """
    Format a timestamp as used in request lines, e.g. 2020-01-01T00:00:00.000.

    Parameters
    ----------
    timestamp : `obspy.UTCDateTime` object
        Timestamp to format.
    precision : int, optional
        Number of sub-second digits to keep. If 0, no fractional part is written.

    Returns
    -------
    out : str
        Formatted timestamp.

    """

    out = timestamp.strftime(TIME_FORMAT)
    if precision:
        out += "." + f"{timestamp.microsecond:06d}"[:precision]

    return out


def data_size(nbytes):
    """
    Format a number of bytes as a human readable string, e.g. "  1.50 MiB".

    Parameters
    ----------
    nbytes : int
        Number of bytes. Negative values are treated as 0.

    Returns
    -------
    out : str
        Size with binary (1024-based) units.

    """

    nbytes = max(int(nbytes), 0)
    units = ["bytes", "KiB", "MiB", "GiB", "TiB", "PiB"]
    for i in range(len(units) - 1, -1, -1):
        scale = 1024**i
        if nbytes >= scale and i > 0:
            return f"{nbytes / scale:6.2f} {units[i]}"

    return f"{nbytes} {units[0]}"


def unique_filename(filename):
    """
    Find a filename that does not exist yet by appending ".0", ".1", ... to the
    requested name.

    Parameters
    ----------
    filename : str or `pathlib.Path` object
        Requested filename.

    Returns
    -------
    out : `pathlib.Path` object
        `filename` if it is free, else the first free numbered variant.

    """

    base = pathlib.Path(filename)
    out = base
    n = 0
    while out.exists():
        out = base.with_name(f"{base.name}.{n}")
        n += 1

    return out


def merge_stream(stream):
    """
    Merge all traces with contiguous data, or overlapping data which exactly matches
    (== st._cleanup(); i.e. no clobber). Apply this on a channel by channel basis so
    that if any individual merge fails then only that channel is left unmerged.

    Requests that were split in time come back as separate traces; this puts them
    back together.

    Parameters
    ----------
    stream : `obspy.Stream` object
        Stream to be merged.

    Returns
    -------
    stream_merged : `obpsy.Stream` object
        Merged Stream.

    """

    # Work on a copy
    stream = stream.copy()

    seed_ids = sorted(set([trace.id for trace in stream]))
    stream_merged = Stream()
    with warnings.catch_warnings():
        warnings.filterwarnings("error")
        for seed_id in seed_ids:
            try:
                stream_merged += stream.select(id=seed_id).merge(method=-1)
            except UserWarning as error_message:
                logging.info(f"\t\t{error_message}")
                logging.info(f"\t\tTraces for {seed_id} are left unmerged.")
                stream_merged += stream.select(id=seed_id)

    return stream_merged


def event_origin(event):
    """
    Get the preferred origin of an earthquake, or its first origin if none is
    preferred.

    Parameters
    ----------
    event : `obspy.core.event.Event` object
        Earthquake.

    Returns
    -------
    origin : `obspy.core.event.Origin` object
        Origin with the time and location of the earthquake.

    Raises
    ------
    MissingOriginException
        If the event has no origin.

    """

    origin = event.preferred_origin()
    if origin is None:
        if not event.origins:
            raise MissingOriginException(event.resource_id)
        origin = event.origins[0]

    return origin


def timeit(*args_, **kwargs_):
    """
    Decorator that logs how long each call to the decorated function takes, e.g.
    "download finished in 12.345 s". Logged at INFO level if the decorator is given
    "info", otherwise at DEBUG level.

    """

    level = logging.INFO if args_ and args_[0] == "info" else logging.DEBUG

    def inner_function(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            ts = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed = time.perf_counter() - ts
            logging.log(level, f"\t{func.__name__} finished in {elapsed:.3f} s")
            return result

        return wrapper

    return inner_function


class RequestLineException(Exception):
    """
    Custom exception to handle a request line that cannot be used: it does not have
    six fields, a timestamp cannot be parsed, the start time is after the end time or
    the request is longer than the maximum request duration.
    """

    def __init__(self, reason, line):
        super().__init__(f"{reason}, skipping\n\t{line}")

        # Additional message printed to log
        self.msg = f" WARNING: {reason}, skipping\n\t{line}"


class InvalidChunkSizeException(Exception):
    """
    Custom exception to handle case when the maximum chunk size used to split a request
    is not a positive number of bytes.
    """

    def __init__(self, max_bytes):
        super().__init__(
            f"Maximum request size must be a positive number of bytes, got {max_bytes}."
        )


class MissingDataSelectURLException(Exception):
    """
    Custom exception to handle case when a data center request can not be sent
    because it does not define a DATASELECTSERVICE url, or has no request lines.
    """

    def __init__(self, datacenter):
        super().__init__(
            f"Data center '{datacenter}' has no DATASELECTSERVICE url or no request "
            "lines - cannot send request."
        )


class MissingQueryParameterException(Exception):
    """
    Custom exception to handle case when an availability query is missing one of the
    parameters required to build a request.
    """

    def __init__(self, key):
        super().__init__(f"Missing value for '{key}' in availability query.")


class EventIDException(Exception):
    """
    Custom exception to handle an event id that cannot be looked up: it is not of the
    form "catalog:id" for a known catalog, or the catalog does not return exactly one
    event for it.
    """

    def __init__(self, eventid, reason):
        super().__init__(
            f"{reason} for event id '{eventid}'. Event ids are of the form "
            "catalog:id, where catalog is one of usgs, isc or gcmt."
        )


class MissingOriginException(Exception):
    """
    Custom exception to handle case when an earthquake has no origin to take a time
    and location from.
    """

    def __init__(self, resource_id):
        super().__init__(f"Event '{resource_id}' has no origin.")

# -*- coding: utf-8 -*-
"""
Module describing a bulk waveform data request made to one or more data centers, in
the plain-text "request" dialect returned by the FedCatalog service:

    KEY=VALUE                       (request parameters, zero or more)

    DATACENTER=<name>
    DATASELECTSERVICE=<url>         (service urls, zero or more)
    NET STA LOC CHA START END       (request lines, one or more)

    DATACENTER=<name>
    ...

Data center requests that have already been downloaded are written out with every
line commented ("# "), which is how an interrupted download is resumed.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

import logging
import pathlib

from obspy import UTCDateTime

import quakefetch.util as util
from quakefetch.request.size import estimate_size


# Longest request (in seconds) accepted for a single request line
MAX_DURATION = 366 * 24 * 60 * 60

# Parser states
HEADER = "header"
SERVICE_URLS = "service_urls"
REQUEST_LINES = "request_lines"


class RequestLine:
    """
    A single channel / time window in a data request.

    Parameters
    ----------
    network : str
        Network code. May include wildcards ("*", "?") and negation ("-").
    station : str
        Station code.
    location : str
        Location code ("--" for an empty location).
    channel : str
        Channel code; the band code (first character) is used for size estimates.
    starttime : `obspy.UTCDateTime` object
        Start of the requested time window.
    endtime : `obspy.UTCDateTime` object
        End of the requested time window.
    raw : str, optional
        Text of the line as it was read. If not provided, the line is formatted from
        its fields.

    """

    def __init__(
        self, network, station, location, channel, starttime, endtime, raw=None
    ):
        """Instantiate the RequestLine object."""

        self.network = network
        self.station = station
        self.location = location
        self.channel = channel
        self.starttime = UTCDateTime(starttime)
        self.endtime = UTCDateTime(endtime)
        self.raw = raw if raw is not None else self.format()

    @classmethod
    def from_string(cls, line):
        """
        Parse a request line: "NET STA LOC CHA START END".

        Parameters
        ----------
        line : str
            Text of the request line.

        Returns
        -------
        out : :class:`~quakefetch.request.document.RequestLine` object
            Parsed request line, keeping the original text.

        Raises
        ------
        RequestLineException
            If the line does not have 6 fields, either timestamp cannot be parsed, the
            start time is not before the end time, or the request is longer than 366
            days.

        """

        line = line.strip()
        fields = line.split()
        if len(fields) != 6:
            raise util.RequestLineException("Cannot parse request line", line)

        try:
            starttime, endtime = UTCDateTime(fields[4]), UTCDateTime(fields[5])
        except (TypeError, ValueError):
            raise util.RequestLineException("Cannot parse date/time", line)

        if starttime >= endtime:
            raise util.RequestLineException("Start-time not before end-time", line)

        duration = endtime - starttime
        if duration > MAX_DURATION:
            raise util.RequestLineException(
                f"Very long request duration: {duration / 86400:.1f} days", line
            )

        return cls(*fields[:4], starttime, endtime, raw=line)

    def __str__(self):
        """Return the text of the request line."""

        return self.raw

    def __repr__(self):
        return f"RequestLine({self.raw!r})"

    def __eq__(self, other):
        if not isinstance(other, RequestLine):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    def format(self):
        """Format the line from its fields, with millisecond timestamps."""

        return (
            f"{self.network} {self.station} {self.location} {self.channel} "
            f"{util.format_time(self.starttime)} {util.format_time(self.endtime)}"
        )

    def copy(self, starttime=None, endtime=None):
        """
        Copy the line, optionally with a new time window. A line with a new time window
        is re-formatted.

        """

        if starttime is None and endtime is None:
            return RequestLine(*self.key, raw=self.raw)

        starttime = self.starttime if starttime is None else starttime
        endtime = self.endtime if endtime is None else endtime

        return RequestLine(
            self.network, self.station, self.location, self.channel, starttime, endtime
        )

    @property
    def key(self):
        """Get the (net, sta, loc, cha, start, end) tuple identifying the line."""
        return (
            self.network,
            self.station,
            self.location,
            self.channel,
            self.starttime,
            self.endtime,
        )

    @property
    def duration(self):
        """Get the length of the requested time window in seconds."""
        return self.endtime - self.starttime

    @property
    def size(self):
        """Get the estimated size of the request in bytes."""
        return estimate_size(self.channel, self.duration)


class DataCenterRequest:
    """
    The set of request lines to be sent to a single data center, with the urls of that
    data center's services.

    Parameters
    ----------
    urls : dict, optional
        Service name -> url, e.g. {"DATACENTER": "IRISDMC,http://ds.iris.edu",
        "DATASELECTSERVICE": "http://service.iris.edu/fdsnws/dataselect/1/"}.
    lines : list of :class:`~quakefetch.request.document.RequestLine`, optional
        Request lines, in order.
    done : bool, optional
        Whether this request has already been downloaded. (Default False)

    """

    def __init__(self, urls=None, lines=None, done=False):
        """Instantiate the DataCenterRequest object."""

        self.urls = dict(urls) if urls else {}
        self.urls.setdefault("DATACENTER", "")
        self.lines = list(lines) if lines else []
        self.done = done

    def __repr__(self):
        return (
            f"DataCenterRequest({self.datacenter!r}, {len(self.lines)} lines, "
            f"done={self.done})"
        )

    def __eq__(self, other):
        if not isinstance(other, DataCenterRequest):
            return NotImplemented
        return (
            self.urls == other.urls
            and self.lines == other.lines
            and self.done == other.done
        )

    def empty_copy(self):
        """Create a new, empty request to the same data center."""

        return DataCenterRequest(urls=self.urls)

    @property
    def datacenter(self):
        """Get the data center identity string."""
        return self.urls["DATACENTER"]

    @property
    def name(self):
        """
        Get the short name of the data center: the part of the DATACENTER entry before
        the first comma, e.g. "IRISDMC" for "IRISDMC,http://ds.iris.edu".

        """

        name, _, _ = self.datacenter.partition(",")
        return name.strip()

    @property
    def dataselect_url(self):
        """
        Get the url data requests are POSTed to: the DATASELECTSERVICE url with the
        "query" path segment added. None if no DATASELECTSERVICE url is set.

        """

        url = self.urls.get("DATASELECTSERVICE")
        if not url:
            return None
        return f"{url}{'' if url.endswith('/') else '/'}query"

    @property
    def body(self):
        """Get the POST body for this request: the request lines, one per line."""
        return "\n".join(str(line) for line in self.lines)

    @property
    def size(self):
        """Get the estimated size of the whole request in bytes."""
        return sum(line.size for line in self.lines)


class RequestDocument:
    """
    A bulk data request, possibly to several data centers.

    Parameters
    ----------
    parameters : dict, optional
        Request parameters (e.g. the query the request was built from).
    requests : list of :class:`~quakefetch.request.document.DataCenterRequest`
        Requests to each data center, in order.

    Methods
    -------
    parse(text)
        Create a RequestDocument from text.
    write(fp, interactive=None)
        Write the document out in the request dialect.
    write_to_file(filename)
        Overwrite a file with the document.

    """

    def __init__(self, parameters=None, requests=None):
        """Instantiate the RequestDocument object."""

        self.parameters = dict(parameters) if parameters else {}
        self.requests = list(requests) if requests else []

    def __str__(self):
        """Return the document in the (non-interactive) request dialect."""

        return "".join(self._format(interactive=False))

    def __eq__(self, other):
        if not isinstance(other, RequestDocument):
            return NotImplemented
        return self.parameters == other.parameters and self.requests == other.requests

    @classmethod
    def parse(cls, text):
        """
        Parse a request document.

        Parameters
        ----------
        text : str
            Request text, e.g. as returned by the FedCatalog service, or a request
            file written by :func:`~quakefetch.request.document.RequestDocument.write`.

        Returns
        -------
        document : :class:`~quakefetch.request.document.RequestDocument` object or None
            Parsed request, or None if the text did not contain any DATACENTER blocks.

        """

        document = cls()
        request = None
        state = HEADER

        for line_orig in text.split("\n"):
            line = line_orig.strip()
            comment = False
            if line.startswith("#"):
                comment = True
                line = line[1:].lstrip()
                if line.startswith("#"):
                    continue
            empty = line == ""
            is_datacenter = line.startswith("DATACENTER")

            # State transitions
            if state == HEADER:
                if is_datacenter:
                    state = SERVICE_URLS
            elif state == SERVICE_URLS:
                if empty:
                    state = HEADER
                elif "SERVICE" not in line:
                    state = REQUEST_LINES
            elif state == REQUEST_LINES:
                if empty:
                    state = HEADER
                elif is_datacenter:
                    state = SERVICE_URLS

            if is_datacenter and state == SERVICE_URLS:
                request = DataCenterRequest(done=comment)
                document.requests.append(request)

            # Actions
            if state == HEADER and not empty:
                key_value = _parse_key_value(line)
                if key_value is None:
                    logging.warning(
                        "\tExpected key=value for request parameters, skipping"
                        f"\n\t\t{line_orig}"
                    )
                    continue
                document.parameters[key_value[0]] = key_value[1]
            elif state == SERVICE_URLS:
                key_value = _parse_key_value(line)
                if key_value is None:
                    if is_datacenter:
                        request.urls["DATACENTER"] = line[10:].strip()
                        continue
                    logging.warning(
                        "\tExpected key=value for service urls, skipping"
                        f"\n\t\t{line_orig}"
                    )
                    continue
                request.urls[key_value[0]] = key_value[1]
            elif state == REQUEST_LINES:
                try:
                    request.lines.append(RequestLine.from_string(line))
                except util.RequestLineException as e:
                    logging.warning(e.msg)

        if not document.requests:
            return None

        return document

    def write(self, fp, interactive=None):
        """
        Write out the request document.

        For an interactive destination (a terminal) the request parameters and the
        service urls other than DATACENTER are left out, for readability.

        Parameters
        ----------
        fp : file-like object
            Destination, e.g. an open file or `sys.stdout`.
        interactive : bool, optional
            Whether to write the short, interactive form. Default is to check whether
            `fp` is a terminal.

        """

        if interactive is None:
            interactive = fp.isatty()

        for chunk in self._format(interactive):
            fp.write(chunk)

    def write_to_file(self, filename):
        """
        Overwrite a file with the request document. The document is written to a
        temporary file first, then moved into place in a single step.

        Parameters
        ----------
        filename : str or `pathlib.Path` object
            File to write to.

        """

        filename = pathlib.Path(filename)
        tmp = filename.with_name(f".{filename.name}.tmp")
        with tmp.open("w") as f:
            self.write(f, interactive=False)
        tmp.replace(filename)

    def _format(self, interactive):
        """Generate the text of the document."""

        if not interactive:
            yield "## REQUEST PARAMETERS\n"
            for key, value in self.parameters.items():
                yield f"{key}={value}\n"
            yield "\n"

        n = len(self.requests)
        for i, request in enumerate(self.requests):
            comment = "# " if request.done else ""
            yield f"## REQUEST {i + 1}/ {n}\n"
            yield f"{comment}DATACENTER={request.datacenter}\n"
            if not interactive:
                for key, value in request.urls.items():
                    if key != "DATACENTER":
                        yield f"{comment}{key}={value}\n"
            for line in request.lines:
                yield f"{comment}{line}\n"
            yield "\n"

    @property
    def pending(self):
        """Get the requests that have not been downloaded yet."""
        return [request for request in self.requests if not request.done]

    @property
    def lines(self):
        """Get every request line in the document, in order."""
        return [line for request in self.requests for line in request.lines]

    @property
    def size(self):
        """Get the estimated size of the whole document in bytes."""
        return sum(request.size for request in self.requests)


def read_request(filename):
    """
    Read a request document from file.

    Parameters
    ----------
    filename : str or `pathlib.Path` object
        Request file, e.g. a checkpoint file left by an interrupted download.

    Returns
    -------
    document : :class:`~quakefetch.request.document.RequestDocument` object or None
        Parsed request, or None if the file contains no DATACENTER blocks.

    """

    logging.info(f"\tReading request file: {filename}")
    with open(filename, "r") as f:
        return RequestDocument.parse(f.read())


def _parse_key_value(line, delim="="):
    """
    Split "key=value" into a stripped (key, value) pair, or None if there is no `delim`.

    """

    if delim not in line:
        return None
    key, _, value = line.partition(delim)

    return key.strip(), value.strip()

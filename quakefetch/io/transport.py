# -*- coding: utf-8 -*-
"""
Module to handle HTTP requests to FDSN web services.

Requests never raise on network or HTTP failures: every request returns a
:class:`~quakefetch.io.transport.Result`, which records the outcome.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

from __future__ import annotations

import logging
import pathlib
import re

import requests

import quakefetch
import quakefetch.util as util


DEFAULT_TIMEOUT = 120.0

# Transport error codes
OK = 0
CONNECTION_ERROR = 1

# HTTP status codes used by FDSN web services to signal that no data matched
NO_DATA_CODES = (204, 404)

_FILENAME_RE = re.compile(r"filename\*?=(?:UTF-8'')?\"?([^\";]+)\"?", re.IGNORECASE)


class Result:
    """
    Outcome of a single HTTP request.

    Parameters
    ----------
    code : int, optional
        Transport error code: 0 if a response was received, else non-zero.
    http_code : int, optional
        HTTP status code of the response (0 if none was received).
    data : bytes, optional
        Body of the response.
    error : str, optional
        Error message, if the request failed.
    filename : str, optional
        Filename suggested by the server in the Content-Disposition header.
    url : str, optional
        Url the request was sent to.

    """

    def __init__(
        self,
        code: int = OK,
        http_code: int = 0,
        data: bytes = b"",
        error: str | None = None,
        filename: str | None = None,
        url: str | None = None,
    ) -> None:
        """Instantiate the Result object."""

        self.code = code
        self.http_code = http_code
        self.data = data
        self.error = error
        self.filename = filename
        self.url = url

    def __repr__(self) -> str:
        return (
            f"Result(code={self.code}, http_code={self.http_code}, "
            f"{util.data_size(len(self))})"
        )

    def __len__(self) -> int:
        return len(self.data)

    @classmethod
    def from_response(cls, response: requests.Response) -> Result:
        """Create a Result from a `requests.Response`."""

        result = cls(
            http_code=response.status_code,
            data=response.content,
            filename=filename_from_content_disposition(
                response.headers.get("Content-Disposition")
            ),
            url=response.url,
        )
        if response.status_code >= 400 and not result.is_empty:
            detail = response.text.strip().split("\n")[0] if response.content else ""
            result.error = f"HTTP {response.status_code} {response.reason}: {detail}"

        return result

    @property
    def is_ok(self) -> bool:
        """
        Get whether the request succeeded with content: a response was received, with
        an HTTP status below 400 that is not 204 (no content).

        """

        return self.code == OK and self.http_code < 400 and self.http_code != 204

    @property
    def is_empty(self) -> bool:
        """Get whether the service reported that no data matched the request."""
        return self.code == OK and self.http_code in NO_DATA_CODES

    @property
    def error_message(self) -> str:
        """Get a description of what went wrong with the request."""

        if self.error:
            return self.error
        if self.is_empty:
            return "No data available"
        return f"HTTP {self.http_code}"

    @property
    def text(self) -> str:
        """Get the body of the response as text."""
        return self.data.decode("utf-8", errors="replace")

    def write_to_file(self, filename: str | pathlib.Path | None = None) -> pathlib.Path:
        """
        Write the body of the response to file. If the file already exists, a unique
        filename is created by appending a number, see
        :func:`~quakefetch.util.unique_filename`.

        Parameters
        ----------
        filename:
            File to write to. Defaults to the filename suggested by the server.

        Returns
        -------
         :
            File the data was written to.

        Raises
        ------
        ValueError
            If no filename is given and the server did not suggest one.

        """

        if filename is None:
            filename = self.filename
        if filename is None:
            raise ValueError("Cannot write data to file: unknown filename.")

        path = util.unique_filename(filename)
        path.parent.mkdir(exist_ok=True, parents=True)
        path.write_bytes(self.data)
        logging.info(f"\tWriting data to {path} [{util.data_size(len(self))}]")

        return path


class Transport:
    """
    Light wrapper around a `requests.Session` that sends GET and POST requests and
    turns their outcome into :class:`~quakefetch.io.transport.Result` objects.

    Parameters
    ----------
    timeout : float, optional
        Seconds to wait for the server before giving up on a request. (Default 120)
    session : `requests.Session` object, optional
        Session to send requests with. A new session is created if not given.

    """

    def __init__(
        self, timeout: float = DEFAULT_TIMEOUT, session: requests.Session | None = None
    ) -> None:
        """Instantiate the Transport object."""

        self.timeout = timeout
        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = f"quakefetch/{quakefetch.__version__}"
        self.session = session

    def get(self, url: str, params: dict | None = None) -> Result:
        """Send a GET request to `url`, with optional query parameters."""

        return self._send("GET", url, params=params)

    def post(self, url: str, data: str | bytes) -> Result:
        """Send a POST request to `url` with `data` as the request body."""

        if isinstance(data, str):
            data = data.encode("utf-8")
        return self._send("POST", url, data=data)

    def _send(self, method: str, url: str, **kwargs) -> Result:
        logging.debug(f"\t{method} {url}")
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logging.debug(f"\t\tRequest failed: {e}")
            return Result(code=CONNECTION_ERROR, error=str(e), url=url)

        result = Result.from_response(response)
        logging.debug(
            f"\t\tHTTP {result.http_code} [{util.data_size(len(result))}] from {url}"
        )

        return result


def filename_from_content_disposition(header: str | None) -> str | None:
    """
    Extract the filename from a Content-Disposition header, e.g.
    'attachment; filename="fdsnws.mseed"' -> "fdsnws.mseed".

    """

    if not header:
        return None
    match = _FILENAME_RE.search(header)
    if match is None:
        return None

    return pathlib.Path(match.group(1).strip()).name

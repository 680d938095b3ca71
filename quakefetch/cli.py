"""
Command-line interface (CLI) for the quakefetch package.

This module provides a collection of scripts for:
    - querying the FedCatalog service for data availability, and writing out a request
      file split into manageable pieces;
    - downloading the data for a request file (or a new query), resuming from where a
      previous download left off;
    - searching FDSN event and station services, and printing a summary of the
      earthquakes or stations found.

Any query can be centred on an earthquake with --event, e.g. "usgs:us7000abcd".

Options can also be supplied in a .toml configuration file, e.g.:

    log_level = "info"

    [query]
    network = "IU"
    station = "ANMO"
    channel = "BHZ"
    starttime = "2020-01-01T00:00:00"
    duration = "1d"

    [chunk]
    max_mb = 200

    [download]
    prefix = "fdsnws"
    format = "miniseed"
    timeout = 120
    retry_failed = false

    [event]
    magnitude = "6/10"
    depth = "0/100"

    [station]
    network = "IU"
    show_time = true

Options given on the command line take precedence over the configuration file.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

import argparse
import logging
import pathlib
import re
import sys
import tomllib

from obspy import UTCDateTime

import quakefetch.util as util


DEFAULT_CHUNK_MB = 200.0
DEFAULT_REQUEST_FILE = "fdsnws.request"

_DURATION_RE = re.compile(r"^([+-]?\d+(?:\.\d+)?)([smhdw]?)$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}


def parse_duration(text: str) -> float:
    """
    Parse a duration such as "30m", "-1m", "2h", "1.5d" or "3600" (seconds).

    Raises
    ------
    ValueError
        If `text` is not a valid duration.

    """

    match = _DURATION_RE.match(str(text).strip())
    if match is None:
        raise ValueError(f"Expected duration (e.g. 30m, 2h, 1d), found {text}")

    return float(match.group(1)) * _DURATION_UNITS[match.group(2)]


def _parse_values(text: str, n: int, name: str) -> list:
    """Parse "a/b[/c/d]" into n floats."""

    values = str(text).split("/")
    if len(values) != n:
        raise ValueError(f"Expected {name}, found {text}")

    return [float(v) for v in values]


def _load_config(path) -> dict:
    """Read a .toml configuration file, if one was given."""

    if path is None:
        return {}
    with pathlib.Path(path).open("rb") as f:
        return tomllib.load(f)


def _option(args, parameters: dict):
    """Get an option from the command line, or else from the config parameters."""

    def option(key):
        value = getattr(args, key, None)
        return value if value is not None else parameters.get(key)

    return option


def _set_time_range(query, args, parameters: dict) -> None:
    """Set a start time and either an end time or a duration."""

    option = _option(args, parameters)
    time = getattr(args, "time", None) or []
    starttime = time[0] if time else parameters.get("starttime")
    endtime = time[1] if len(time) > 1 else parameters.get("endtime")
    if starttime is None:
        return

    starttime = UTCDateTime(starttime)
    duration = option("duration")
    if endtime is not None and _DURATION_RE.match(str(endtime)):
        duration, endtime = endtime, None
    if endtime is not None:
        query.set_time_range(starttime, UTCDateTime(endtime))
    elif duration is not None:
        query.set_time_range(starttime, starttime)
        query.use_duration(parse_duration(duration))


def _set_geographic(query, args, parameters: dict) -> None:
    """Set a region, or the origin and radius of a radial search."""

    option = _option(args, parameters)
    if option("region") is not None:
        region = _parse_values(option("region"), 4, "minlon/maxlon/minlat/maxlat")
        query.set_region(*region)
    if option("origin") is not None:
        query.set_origin(*_parse_values(option("origin"), 2, "lon/lat"))
    if option("radius") is not None:
        query.set_radius(*_parse_values(option("radius"), 2, "minradius/maxradius"))


def _set_codes(query, args, parameters: dict) -> None:
    option = _option(args, parameters)
    if option("network") is not None:
        query.set_network(option("network"))
    if option("station") is not None:
        query.set_station(option("station"))
    if option("location") is not None:
        query.set_location(option("location"))
    if option("channel") is not None:
        query.set_channel(option("channel"))


def _lookup_event(args, parameters: dict, transport=None):
    """Look up the earthquake named by --event, if any; exit if it is not found."""

    from quakefetch.io.metadata import event_from_id

    eventid = _option(args, parameters)("event")
    if eventid is None:
        return None

    try:
        return event_from_id(eventid, transport)
    except (util.EventIDException, util.MissingOriginException) as e:
        logging.error(f"{e}\nExiting.")
        sys.exit(1)


def _build_query(args, parameters: dict, transport=None):
    """Create an AvailabilityQuery from command-line options and config parameters."""

    from quakefetch.io import FEDCATALOG_IRIS, AvailabilityQuery

    option = _option(args, parameters)
    query = AvailabilityQuery(url=option("url") or FEDCATALOG_IRIS)

    _set_codes(query, args, parameters)
    if option("quality") is not None:
        query.set_quality(option("quality"))
    _set_time_range(query, args, parameters)
    _set_geographic(query, args, parameters)

    # --- Centre on an earthquake: data from its origin time, around its epicentre ---
    event = _lookup_event(args, parameters, transport)
    if event is not None:
        query.set_event(event)
        if option("duration") is not None:
            query.use_duration(parse_duration(option("duration")))

    return query


def _build_event_query(args, parameters: dict, transport=None):
    """Create an EventQuery from command-line options and config parameters."""

    from quakefetch.io.metadata import EVENT_USGS, EventQuery

    option = _option(args, parameters)
    if option("url") is not None:
        query = EventQuery(url=option("url"), catalog=None)
    else:
        query = EventQuery(url=EVENT_USGS)

    _set_time_range(query, args, parameters)
    if option("magnitude") is not None:
        query.set_magnitude(*_parse_values(option("magnitude"), 2, "minmag/maxmag"))
    if option("depth") is not None:
        query.set_depth(*_parse_values(option("depth"), 2, "mindepth/maxdepth"))
    _set_geographic(query, args, parameters)

    # --- Search around the origin time of an earthquake ---
    event = _lookup_event(args, parameters, transport)
    if event is not None:
        query.set_event(event)

    return query


def _build_station_query(args, parameters: dict, transport=None):
    """Create a StationQuery from command-line options and config parameters."""

    from quakefetch.io.metadata import STATION_IRIS, StationQuery

    option = _option(args, parameters)
    query = StationQuery(url=option("url") or STATION_IRIS)

    _set_codes(query, args, parameters)
    if option("level") is not None:
        query.set_level(option("level"))
    _set_time_range(query, args, parameters)
    _set_geographic(query, args, parameters)

    # --- Stations operating at the origin time of an earthquake, around it ---
    event = _lookup_event(args, parameters, transport)
    if event is not None:
        query.set_event(event)

    return query


def _max_bytes(args, parameters: dict) -> int:
    """Get the maximum request size in bytes, from a size given in MiB."""

    max_mb = args.max if args.max is not None else parameters.get("max_mb")
    if max_mb is None:
        max_mb = DEFAULT_CHUNK_MB

    return int(float(max_mb) * 1024 * 1024)


def _chunk_pending(document, max_bytes: int):
    """Split the requests not yet downloaded; requests already done are kept as is."""

    from quakefetch.request import chunk_request

    requests = []
    for request in document.requests:
        if request.done:
            requests.append(request)
        else:
            requests.extend(chunk_request(request, max_bytes))
    document.requests = requests

    return document


def _query(args, config: dict):
    """Run an availability query and split the request document returned."""

    from quakefetch.io import Transport
    from quakefetch.request import chunk_document

    transport = Transport(timeout=_timeout(args, config.get("download", {})))
    query = _build_query(args, config.get("query", {}), transport)
    if not query.is_ok():
        logging.error(
            "Availability query needs at least a channel, a start time and an end time "
            "(or duration).\nExiting."
        )
        sys.exit(1)
    logging.info(query)
    logging.debug(f"\t{query.to_url()}")

    station_file = args.station_file or config.get("query", {}).get("station_file")
    document = query.fetch(transport, station_file=station_file)
    if document is None:
        return None

    max_bytes = _max_bytes(args, config.get("chunk", {}))
    chunk_document(document, max_bytes)
    logging.info(
        f"\t{len(document.requests)} requests, est. {util.data_size(document.size)}"
    )

    return document


def _timeout(args, parameters: dict) -> float:
    if getattr(args, "timeout", None) is not None:
        return args.timeout
    return parameters.get("timeout", 120.0)


def _setup_logging(args, config: dict, filename) -> None:
    """Configure the logger, with the log file (if any) kept beside the request file."""

    loglevel = args.loglevel or config.get("log_level", "info")
    util.logger(filename or DEFAULT_REQUEST_FILE, args.log, loglevel=loglevel)


def _run_request(args) -> None:
    """Query data availability and write out a request file."""

    config = _load_config(args.config)
    _setup_logging(args, config, args.output)

    document = _query(args, config)
    if document is None:
        logging.info("No data center requests to write.")
        return

    if args.output:
        document.write_to_file(args.output)
        logging.info(f"\tRequest written to {args.output}")
    else:
        document.write(sys.stdout)


def _run_download(args) -> None:
    """Download the data for a request file, or for a new availability query."""

    from quakefetch.io import Downloader, Transport, WaveformCodec
    from quakefetch.request import read_request

    config = _load_config(args.config)
    parameters = config.get("download", {})
    filename = args.output or args.input or DEFAULT_REQUEST_FILE
    _setup_logging(args, config, filename)

    if args.input:
        document = read_request(args.input)
        if document is not None and (
            args.max is not None or "max_mb" in config.get("chunk", {})
        ):
            _chunk_pending(document, _max_bytes(args, config.get("chunk", {})))
    else:
        document = _query(args, config)

    if document is None:
        logging.info("No data center requests found - nothing to download.")
        return

    file_format = (args.format or parameters.get("format", "miniseed")).lower()
    prefix = args.prefix or parameters.get("prefix", "fdsnws")
    output_dir = args.output_dir or parameters.get("output_dir", ".")
    retry_failed = args.retry_failed or parameters.get("retry_failed", False)

    document.write_to_file(filename)

    codec = WaveformCodec()
    downloader = Downloader(
        transport=Transport(timeout=_timeout(args, parameters)),
        codec=codec,
        prefix=prefix,
        save_files=file_format == "miniseed",
        unpack_data=file_format == "sac",
        output_dir=output_dir,
        mark_failed_done=not retry_failed,
    )
    logging.info(downloader)

    stream = downloader.download(document, filename)

    if file_format == "sac" and stream is not None:
        codec.write(stream, output_dir, file_format="SAC")


def _run_event(args) -> None:
    """Search for earthquakes and print a summary of each one found."""

    from quakefetch.io import Transport
    from quakefetch.io.metadata import write_events

    config = _load_config(args.config)
    _setup_logging(args, config, args.output or "events.xml")

    transport = Transport(timeout=_timeout(args, config.get("download", {})))
    query = _build_event_query(args, config.get("event", {}), transport)
    logging.info(query)
    logging.debug(f"\t{query.to_url()}")

    catalog = query.fetch(transport)
    if catalog is None:
        return

    write_events(catalog, sys.stdout, source=query.catalog)
    if args.output:
        catalog.write(args.output, format="QUAKEML")
        logging.info(f"\tEvents written to {args.output}")


def _run_station(args) -> None:
    """Search for stations and print a summary of each one found."""

    from quakefetch.io import Transport
    from quakefetch.io.metadata import write_stations

    config = _load_config(args.config)
    parameters = config.get("station", {})
    _setup_logging(args, config, args.output or "stations.xml")

    transport = Transport(timeout=_timeout(args, config.get("download", {})))
    query = _build_station_query(args, parameters, transport)
    logging.info(query)
    logging.debug(f"\t{query.to_url()}")

    inventory = query.fetch(transport)
    if inventory is None:
        return

    write_stations(
        inventory,
        sys.stdout,
        show_time=args.show_time or parameters.get("show_time", False),
        epochs=args.epochs or parameters.get("epochs", False),
    )
    if args.output:
        inventory.write(args.output, format="STATIONXML")
        logging.info(f"\tStations written to {args.output}")


def _add_codes_arguments(group) -> None:
    group.add_argument("-n", "--network", help="Network(s), e.g. IU,XE.")
    group.add_argument("-s", "--station", help="Station(s), e.g. ANMO.")
    group.add_argument("-l", "--location", help="Location(s). (Default *)")
    group.add_argument("-C", "--channel", help="Channel(s), e.g. BH?.")


def _add_search_arguments(group) -> None:
    """Options for the time range and area of any query."""

    group.add_argument(
        "-t",
        "--time",
        nargs="+",
        metavar="TIME",
        help="Start time, followed by an end time or a duration (e.g. 30m, 1d).",
    )
    group.add_argument("-d", "--duration", help="Duration from the start time.")
    group.add_argument("-R", "--region", help="Region: minlon/maxlon/minlat/maxlat.")
    group.add_argument("-O", "--origin", help="Origin of a radial search: lon/lat.")
    group.add_argument("-r", "--radius", help="Radius of a radial search: min/max.")
    group.add_argument(
        "-e",
        "--event",
        help="Centre the query on an earthquake, e.g. usgs:us7000abcd.",
    )


def _add_query_arguments(parser) -> None:
    """Options describing an availability query."""

    group = parser.add_argument_group("availability query")
    _add_codes_arguments(group)
    _add_search_arguments(group)
    group.add_argument("-q", "--quality", help="Data quality, e.g. best, raw, all.")
    group.add_argument(
        "--station-file",
        dest="station_file",
        help="File listing network and station codes to query for.",
    )
    group.add_argument("--url", help="FedCatalog service url.")


def _add_common_arguments(parser, chunk: bool = True) -> None:
    parser.add_argument("-c", "--config", help="Read options from a .toml file.")
    if chunk:
        parser.add_argument(
            "-M",
            "--max",
            type=float,
            help=(
                "Maximum size of each request in MiB. "
                f"(Default {DEFAULT_CHUNK_MB:.0f})"
            ),
        )
    parser.add_argument(
        "--timeout", type=float, help="Seconds to wait for a server to respond."
    )
    parser.add_argument(
        "--loglevel",
        choices=["info", "debug"],
        help="Set the logging level. (Default info)",
    )
    parser.add_argument(
        "--log", action="store_true", help="Also write output to a log file."
    )


FN_MAP = {
    "request": _run_request,
    "download": _run_download,
    "event": _run_event,
    "station": _run_station,
}


def entry_point(args=None) -> None:
    """Entry point for the `quakefetch` command-line utility."""

    parser = argparse.ArgumentParser(prog="quakefetch")

    sub_parser = parser.add_subparsers(
        title="commands",
        dest="command",
        required=True,
        help="Select a sub-command.",
    )

    request_parser = sub_parser.add_parser(
        "request", help="Query data availability and write a request file."
    )
    _add_common_arguments(request_parser)
    _add_query_arguments(request_parser)
    request_parser.add_argument(
        "-o", "--output", help="Request file to write. (Default: print to stdout)"
    )

    download_parser = sub_parser.add_parser(
        "download", help="Download the data for a request file."
    )
    _add_common_arguments(download_parser)
    _add_query_arguments(download_parser)
    download_parser.add_argument(
        "-i",
        "--input",
        help="Request file to download; also used to resume an interrupted download.",
    )
    download_parser.add_argument(
        "-o",
        "--output",
        help="Request file to checkpoint progress to. (Default: the input file)",
    )
    download_parser.add_argument(
        "-f",
        "--format",
        choices=["miniseed", "sac"],
        help="Save data as miniSEED files, or as SAC files. (Default miniseed)",
    )
    download_parser.add_argument(
        "-p", "--prefix", help="Prefix for miniSEED files. (Default fdsnws)"
    )
    download_parser.add_argument(
        "--output-dir", dest="output_dir", help="Directory to write data files to."
    )
    download_parser.add_argument(
        "--retry-failed",
        dest="retry_failed",
        action="store_true",
        help="Leave failed requests to be retried when the download is resumed.",
    )

    event_parser = sub_parser.add_parser(
        "event", help="Search for earthquakes and print a summary of each one."
    )
    _add_common_arguments(event_parser, chunk=False)
    group = event_parser.add_argument_group("event search")
    _add_search_arguments(group)
    group.add_argument("-m", "--magnitude", help="Magnitude range: minmag/maxmag.")
    group.add_argument("-z", "--depth", help="Depth range in km: mindepth/maxdepth.")
    group.add_argument("--url", help="Event service url. (Default: USGS)")
    event_parser.add_argument("-o", "--output", help="Also save events as QuakeML.")

    station_parser = sub_parser.add_parser(
        "station", help="Search for stations and print a summary of each one."
    )
    _add_common_arguments(station_parser, chunk=False)
    group = station_parser.add_argument_group("station search")
    _add_codes_arguments(group)
    _add_search_arguments(group)
    group.add_argument(
        "--level",
        choices=["network", "station", "channel", "response"],
        help="Level of detail to request. (Default station)",
    )
    group.add_argument("--url", help="Station service url. (Default: IRIS)")
    station_parser.add_argument(
        "-y",
        "--epochs",
        action="store_true",
        help="Print every epoch of each station, not only the first.",
    )
    station_parser.add_argument(
        "-w",
        "--show-time",
        dest="show_time",
        action="store_true",
        help="Print when each station was installed and removed.",
    )
    station_parser.add_argument(
        "-o", "--output", help="Also save stations as StationXML."
    )

    args = parser.parse_args(args)

    # Parse arguments and execute relevant function
    FN_MAP[args.command](args)

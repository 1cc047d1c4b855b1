"""
IP list parser.

Reads addresses and CIDRs from explicit values, files or directories of files
and normalizes them into an ordered, deduplicated set of network prefixes.
"""
import ipaddress
import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from wafkeeper.core.exceptions import ParseError

logger = logging.getLogger(__name__)

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def parse_network(text: str, source: str = "<input>", line_number: Optional[int] = None) -> Network:
    """
    Parse an address or CIDR into its canonical network.

    A bare address becomes a single-host network (/32 or /128). Host bits set in
    a CIDR are masked off, so 10.0.0.5/24 yields 10.0.0.0/24.

    Args:
        text: Address or CIDR
        source: Where the text came from, for error reporting
        line_number: 1-based line number in the source, if any

    Returns:
        IPv4Network or IPv6Network

    Raises:
        ParseError: if the text is not a valid address or CIDR
    """
    value = text.strip()
    try:
        if "/" not in value:
            address = ipaddress.ip_address(value)
            return ipaddress.ip_network(f"{address}/{address.max_prefixlen}")
        return ipaddress.ip_network(value, strict=False)
    except ValueError:
        raise ParseError(text, source=source, line_number=line_number) from None


class IPSet:
    """
    Ordered set of networks keyed by canonical string form.

    The first occurrence of a network wins; later duplicates are discarded
    without reordering.
    """

    def __init__(self, networks: Optional[Iterable[Network]] = None):
        self._networks: List[Network] = []
        self._seen = set()
        if networks is not None:
            self.extend(networks)

    @classmethod
    def from_values(cls, values: Iterable[str], source: str = "<input>") -> "IPSet":
        """Build a set from address/CIDR strings, failing on the first invalid one."""
        ipset = cls()
        for index, value in enumerate(values, start=1):
            ipset.add(parse_network(value, source=source, line_number=index))
        return ipset

    def add(self, network: Network) -> bool:
        """Add a network; returns False if an equal network is already present."""
        key = str(network)
        if key in self._seen:
            return False
        self._seen.add(key)
        self._networks.append(network)
        return True

    def extend(self, networks: Iterable[Network]) -> None:
        for network in networks:
            self.add(network)

    def to_strings(self) -> List[str]:
        return [str(network) for network in self._networks]

    def __iter__(self) -> Iterator[Network]:
        return iter(self._networks)

    def __len__(self) -> int:
        return len(self._networks)

    def __contains__(self, item) -> bool:
        return str(item) in self._seen

    def __repr__(self) -> str:
        return f"IPSet({len(self)} networks)"


def parse_lines(lines: Iterable[str], source: str = "<input>") -> List[Network]:
    """Parse one address or CIDR per line, skipping blanks and # comments."""
    networks = []
    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        networks.append(parse_network(line, source=source, line_number=line_number))
    return networks


def read_ips_from_file(path: Union[str, Path]) -> List[Network]:
    """
    Read networks from a file, one per line.

    Raises:
        ParseError: on the first invalid line; nothing is returned in that case
        OSError: if the file cannot be read
    """
    file_path = Path(path)
    with file_path.open("r", encoding="utf-8") as f:
        return parse_lines(f, source=str(file_path))


def load_ips_from_path(path: Union[str, Path]) -> List[Network]:
    """
    Load networks from a file, or from every regular file in a directory.

    Directories are read non-recursively in file name order.

    Raises:
        FileNotFoundError: if the path does not exist
    """
    source = Path(path).expanduser()
    if not source.exists():
        raise FileNotFoundError(f"no such file or directory: {source}")

    if not source.is_dir():
        networks = read_ips_from_file(source)
        logger.debug(f"loaded {len(networks)} ips from file {source}")
        return networks

    networks: List[Network] = []
    for file_path in sorted(p for p in source.iterdir() if p.is_file()):
        file_networks = read_ips_from_file(file_path)
        logger.info(f"loaded {len(file_networks)} ips from file {file_path}")
        networks.extend(file_networks)
    return networks


def load_ipset(
    values: Optional[Iterable[str]] = None,
    paths: Optional[Iterable[Union[str, Path]]] = None,
) -> IPSet:
    """
    Build an IPSet from explicit values followed by the contents of paths.

    Any parse failure aborts the whole load.
    """
    ipset = IPSet()
    if values:
        ipset.extend(IPSet.from_values(values))
    for path in paths or []:
        ipset.extend(load_ips_from_path(path))
    logger.debug(f"total networks after deduplication: {len(ipset)}")
    return ipset

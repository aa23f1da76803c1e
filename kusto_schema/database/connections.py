"""Cluster endpoint resolution and connection descriptors.

A `ConnectionDescriptor` is the immutable form of a Kusto connection
string. The `EndpointResolver` turns a cluster name or URI into the
descriptor to connect with, borrowing credentials from the default
connection for every cluster other than the default one.
"""

import ipaddress
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Optional
from urllib.parse import urlparse

from ..errors import ConnectionResolutionError

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN = ".kusto.windows.net"
ADMIN_CATALOG = "NetDefaultDB"
DEFAULT_SCHEME = "https"

DATA_SOURCE_KEYWORDS = {"data source", "addr", "address", "network address", "server"}
INITIAL_CATALOG_KEYWORDS = {"initial catalog", "database"}

# Credential keywords and their accepted aliases, lower-cased
CREDENTIAL_KEYWORDS: Dict[str, set] = {
    "application_client_id": {"application client id", "appclientid"},
    "application_key": {"application key", "appkey"},
    "application_certificate_blob": {"application certificate blob"},
    "application_certificate_thumbprint": {"application certificate thumbprint", "appcert"},
    "authority_id": {"authority id", "authorityid", "authority", "tenantid", "tenant"},
    "user_token": {"user token", "usertoken", "usrtoken"},
    "application_token": {"application token", "apptoken"},
}


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Identifies one cluster endpoint plus the credentials to reach it.

    `properties` holds every connection-string keyword other than the data
    source and initial catalog, with the key spelling it was given in.
    """
    data_source: str
    initial_catalog: Optional[str] = None
    properties: Dict[str, str] = field(default_factory=dict, hash=False)

    @classmethod
    def from_connection_string(cls, connection_string: str) -> "ConnectionDescriptor":
        """Parse a Kusto connection string or a bare cluster URI.

        Raises:
            ConnectionResolutionError: if no data source can be found
        """
        text = (connection_string or "").strip()
        if not text:
            raise ConnectionResolutionError("Connection string is empty")

        if "=" not in text:
            return cls(data_source=text.rstrip("/"))

        data_source = None
        initial_catalog = None
        properties: Dict[str, str] = {}

        for part in text.split(";"):
            if not part.strip():
                continue
            if "=" not in part:
                raise ConnectionResolutionError(
                    f"Malformed connection string segment: {part.strip()!r}",
                    details={"segment": part.strip()},
                )
            key, value = part.split("=", 1)
            key, value = key.strip(), value.strip()
            lowered = key.lower()
            if lowered in DATA_SOURCE_KEYWORDS:
                data_source = value.rstrip("/")
            elif lowered in INITIAL_CATALOG_KEYWORDS:
                initial_catalog = value
            else:
                properties[key] = value

        if not data_source:
            raise ConnectionResolutionError("Connection string has no Data Source")

        return cls(data_source=data_source, initial_catalog=initial_catalog, properties=properties)

    def to_connection_string(self) -> str:
        """Render the descriptor as a Kusto connection string."""
        parts = [f"Data Source={self.data_source}"]
        if self.initial_catalog:
            parts.append(f"Initial Catalog={self.initial_catalog}")
        parts.extend(f"{key}={value}" for key, value in self.properties.items())
        return ";".join(parts)

    def derive(self, data_source: str, initial_catalog: Optional[str]) -> "ConnectionDescriptor":
        """Copy this descriptor's credentials onto another endpoint."""
        return replace(
            self,
            data_source=data_source,
            initial_catalog=initial_catalog,
            properties=dict(self.properties),
        )

    def get_property(self, keyword: str) -> Optional[str]:
        """Look up a credential by its canonical name (e.g. `application_key`)."""
        aliases = CREDENTIAL_KEYWORDS.get(keyword, {keyword.replace("_", " ")})
        for key, value in self.properties.items():
            if key.lower() in aliases:
                return value
        return None

    @property
    def connection_scheme(self) -> str:
        return urlparse(self.data_source).scheme or DEFAULT_SCHEME

    @property
    def application_client_id(self) -> Optional[str]:
        return self.get_property("application_client_id")

    @property
    def application_key(self) -> Optional[str]:
        return self.get_property("application_key")

    @property
    def application_certificate_blob(self) -> Optional[str]:
        return self.get_property("application_certificate_blob")

    @property
    def authority_id(self) -> Optional[str]:
        return self.get_property("authority_id")

    def __repr__(self) -> str:
        # Never renders credentials
        return (
            f"ConnectionDescriptor(data_source={self.data_source!r}, "
            f"initial_catalog={self.initial_catalog!r})"
        )


def _is_ip_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def _port_of(uri: str) -> Optional[int]:
    try:
        return urlparse(uri).port
    except ValueError:
        return None


def get_host_name(cluster_uri_or_name: str) -> str:
    """Return the lower-cased host of a cluster URI or name (no scheme, port or path)."""
    text = (cluster_uri_or_name or "").strip()
    if not text:
        return ""
    if "://" in text:
        return urlparse(text).hostname or ""
    host = text.split("/", 1)[0]
    if host.count(":") == 1:
        host = host.split(":", 1)[0]
    return host.lower()


def get_full_host_name(cluster_uri_or_name: str, default_domain: str) -> str:
    """Return the fully qualified host, appending default_domain to short names.

    `localhost`, IP literals and hosts that already contain a dot are
    returned unchanged.
    """
    host = get_host_name(cluster_uri_or_name)
    if not host or "." in host or host == "localhost" or _is_ip_address(host):
        return host
    return host + default_domain.lower()


class EndpointResolver:
    """Resolves cluster names and URIs to connection descriptors."""

    def __init__(
        self,
        default_connection: ConnectionDescriptor,
        default_domain: Optional[str] = None,
        admin_catalog: str = ADMIN_CATALOG,
    ):
        """Initialize the resolver.

        Args:
            default_connection: Descriptor of the default cluster; its
                credentials are borrowed for every other cluster
            default_domain: Domain used to fully qualify short host names.
                Must start with a dot. Defaults to `.kusto.windows.net`
            admin_catalog: Initial catalog for non-default clusters
        """
        domain = default_domain or DEFAULT_DOMAIN
        if not domain.startswith("."):
            raise ValueError(f"Default domain must start with a dot: {domain!r}")

        self.default_connection = default_connection
        self.default_domain = domain
        self.admin_catalog = admin_catalog
        self.default_cluster_name = get_host_name(default_connection.data_source)
        self._default_port = _port_of(default_connection.data_source)

    def canonical_cluster_name(self, cluster_name: Optional[str]) -> Optional[str]:
        """Return the canonical (host) name of a cluster, or None if it cannot be resolved.

        An empty name means the default cluster.
        """
        if not cluster_name:
            return self.default_cluster_name
        host = get_full_host_name(cluster_name, self.default_domain)
        return host or None

    def resolve(self, cluster_uri_or_name: Optional[str]) -> Optional[ConnectionDescriptor]:
        """Return the descriptor for a cluster, or None if it cannot be resolved.

        The default cluster resolves to the default descriptor itself, under
        any spelling of its host (short name, URI, other letter case) as long
        as no different port is given.
        """
        if not cluster_uri_or_name or cluster_uri_or_name == self.default_cluster_name:
            return self.default_connection

        if not cluster_uri_or_name.strip():
            return None

        cluster_uri = cluster_uri_or_name.strip()
        if "://" not in cluster_uri:
            cluster_uri = f"{self.default_connection.connection_scheme}://{cluster_uri}"

        try:
            parsed = urlparse(cluster_uri)
            port = parsed.port
        except ValueError:
            logger.warning("Cannot parse cluster URI %r", cluster_uri_or_name)
            return None

        host = get_full_host_name(cluster_uri, self.default_domain)
        if not host:
            logger.warning("Cluster URI %r has no host", cluster_uri_or_name)
            return None

        if host == self.default_cluster_name and port in (None, self._default_port):
            return self.default_connection

        netloc = host if port is None else f"{host}:{port}"
        return self.default_connection.derive(
            data_source=f"{parsed.scheme}://{netloc}",
            initial_catalog=self.admin_catalog,
        )

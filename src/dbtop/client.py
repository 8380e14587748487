"""Command dispatch against a MongoDB deployment."""

import logging
import re
from collections.abc import Iterator, Mapping
from typing import Any

import pymongo
from pymongo import MongoClient

log = logging.getLogger(__name__)

APP_NAME = "dbtop"
OPERATION_METRICS_TIMEOUT = 30.0  # seconds
SERVER_SELECTION_TIMEOUT_MS = 5000

_CREDENTIALS = re.compile(r"^(?P<scheme>mongodb(?:\+srv)?://)(?P<user>[^:@/]*):[^@/]*@")


def sanitize_uri(uri: str) -> str:
    """Hide the password of a connection string."""
    return _CREDENTIALS.sub(r"\g<scheme>\g<user>:[**REDACTED**]@", uri)


def connect(uri: str) -> MongoClient:
    """Create a client; no round trip happens until the first command."""
    kwargs: dict[str, Any] = {
        "appname": APP_NAME,
        "serverSelectionTimeoutMS": SERVER_SELECTION_TIMEOUT_MS,
    }
    # sample the named host itself, not whichever member the driver selects
    authority = uri.split("://", 1)[-1].split("/", 1)[0]
    hosts = authority.rsplit("@", 1)[-1]
    if (
        uri.startswith("mongodb://")
        and "," not in hosts
        and "replicaSet=" not in uri
        and "directConnection" not in uri
    ):
        kwargs["directConnection"] = True
    return MongoClient(uri, **kwargs)


class MongoDispatcher:
    """
    Issues the administrative commands dbtop samples.

    Replies are returned undecoded; turning them into snapshots is the
    decoder's job.
    """

    def __init__(self, client: MongoClient, uri: str = "") -> None:
        self._client = client
        self._admin = client.admin
        self.uri = uri

    @property
    def label(self) -> str:
        return sanitize_uri(self.uri)

    def top(self) -> Mapping[str, Any]:
        return self._admin.command("top")

    def server_status(self) -> Mapping[str, Any]:
        return self._admin.command("serverStatus")

    def operation_metrics(self) -> Iterator[Mapping[str, Any]]:
        """Stream $operationMetrics records under a hard client-side deadline."""
        with pymongo.timeout(OPERATION_METRICS_TIMEOUT):
            with self._admin.aggregate([{"$operationMetrics": {}}]) as cursor:
                yield from cursor

    def num_cores(self) -> int:
        reply = self._admin.command("hostInfo")
        cores = reply.get("system", {}).get("numCores", 1)
        log.debug("hostInfo reports %s cores", cores, extra={"event": "hostinfo"})
        return int(cores) or 1

    def close(self) -> None:
        self._client.close()

"""In-process fake upstreams for tests and local experiments."""

from .fake_upstream import (
    FailingByteStream,
    FakeRelayUpstream,
    FakeSite,
    RelayReply,
    ScriptedByteStream,
    SiteTurn,
    broken_site_transport,
    continuation_record,
    delta_record,
    encode_record,
    site_stream_transport,
    split_bytes,
)

__all__ = [
    "FailingByteStream",
    "FakeRelayUpstream",
    "FakeSite",
    "RelayReply",
    "ScriptedByteStream",
    "SiteTurn",
    "broken_site_transport",
    "continuation_record",
    "delta_record",
    "encode_record",
    "site_stream_transport",
    "split_bytes",
]

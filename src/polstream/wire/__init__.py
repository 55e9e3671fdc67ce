"""
Polarization Stream Processing Engine - Wire Module

Binary UDP codecs at the edges of the pipeline.
"""

from polstream.wire.egress import (
    HEADER_SIZE,
    AudioPacket,
    AudioUdpSender,
    SequenceTracker,
    decode_audio_packet,
    pack_audio_frame,
)
from polstream.wire.ingest import (
    STOKES_DATAGRAM_SIZE,
    StokesSample,
    StokesUdpListener,
    decode_stokes_datagram,
    encode_stokes_datagram,
)

__all__ = [
    "StokesSample",
    "StokesUdpListener",
    "decode_stokes_datagram",
    "encode_stokes_datagram",
    "STOKES_DATAGRAM_SIZE",
    "AudioUdpSender",
    "AudioPacket",
    "SequenceTracker",
    "decode_audio_packet",
    "pack_audio_frame",
    "HEADER_SIZE",
]

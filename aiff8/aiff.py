"""
aiff8.aiff

AIFF / AIFC container parsing.

The container is read once, top to bottom, in a fixed order:

    FORM header -> COMM -> [compression fields, AIFC only] -> SSND

Chunks that are not needed are skipped by reading past them, so any binary
stream works, including pipes. Every field is decoded explicitly as
big-endian with struct; nothing depends on host memory layout.

Typical usage:

    from aiff8.aiff import parse_aiff

    with open("tone.aiff", "rb") as fp:
        info, samples = parse_aiff(fp)

References:
  AIFF 1.3 (Apple, 1989) and AIFF-C draft (Apple, 1991-09-26).
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional, Tuple

import numpy as np

from .extended import EXTENDED, ExtendedFloat, unpack_extended

logger = logging.getLogger(__name__)


# ===================== Constants and layouts =====================

TAG_FORM = b"FORM"
TAG_COMM = b"COMM"
TAG_SSND = b"SSND"

FORM_AIFF = b"AIFF"
FORM_AIFC = b"AIFC"
FORM_TYPES = (FORM_AIFF, FORM_AIFC)

# Compression types that mean "plain big-endian PCM".
PCM_COMPRESSION_TYPES = (b"NONE", b"raw ")

SUPPORTED_SAMPLE_SIZES = (8, 16)

# tag[4], size[s32]
CHUNK_HEADER = struct.Struct(">4si")
# form_type[4]
FORM_TYPE = struct.Struct(">4s")
# num_channels[s16], num_sample_frames[u32], sample_size[u16]; sample_rate follows
COMMON_FIELDS = struct.Struct(">hIH")
# compression_type[4], name_size[u8]
COMPRESSION_FIELDS = struct.Struct(">4sB")
# offset[u32], block_size[u32]
SOUND_DATA_FIELDS = struct.Struct(">II")

_SKIP_BLOCK = 64 * 1024


# ===================== Errors =====================

class AiffError(Exception):
    """Base class for everything that aborts a conversion."""


class FormatError(AiffError, ValueError):
    """The stream is not a well-formed AIFF/AIFC container."""


class UnsupportedFormatError(AiffError, ValueError):
    """The container is valid but uses a feature this converter does not handle."""


class ShortReadError(AiffError, OSError):
    """The stream ended before a complete field could be read."""


class ChunkNotFoundError(FormatError, ShortReadError):
    """The stream ended while scanning for a required chunk."""


# ===================== Data model =====================

@dataclass(frozen=True)
class ChunkHeader:
    tag: bytes
    size: int

    @property
    def padded_size(self) -> int:
        return (self.size + 1) & ~1

    @property
    def name(self) -> str:
        return self.tag.decode("latin-1")


@dataclass(frozen=True)
class ContainerHeader:
    chunk: ChunkHeader
    form_type: bytes

    @property
    def compressed(self) -> bool:
        return self.form_type[3:4] == b"C"


@dataclass(frozen=True)
class CommonChunk:
    num_channels: int
    num_sample_frames: int
    sample_size: int
    sample_rate_raw: ExtendedFloat

    @property
    def sample_rate(self) -> float:
        return self.sample_rate_raw.to_float()

    @property
    def sample_width(self) -> int:
        return self.sample_size // 8


@dataclass(frozen=True)
class CompressionHeader:
    compression_type: bytes
    name_size: int
    name: bytes = b""


@dataclass(frozen=True)
class SoundDataHeader:
    offset: int
    block_size: int


@dataclass(frozen=True)
class AiffInfo:
    """
    Summary of the parsed headers of one container.
    """

    form_type: bytes
    common: CommonChunk
    compression: Optional[CompressionHeader] = None

    @property
    def sample_rate(self) -> float:
        return self.common.sample_rate

    @property
    def sample_size(self) -> int:
        return self.common.sample_size

    @property
    def num_sample_frames(self) -> int:
        return self.common.num_sample_frames

    @property
    def num_channels(self) -> int:
        return self.common.num_channels


# ===================== Low-level reads =====================

def read_exact(fp: BinaryIO, size: int) -> bytes:
    """
    Read exactly `size` bytes or raise ShortReadError.

    Reads in blocks of at most _SKIP_BLOCK bytes.
    """
    size = int(size)
    buf = bytearray()
    while len(buf) < size:
        part = fp.read(min(size - len(buf), _SKIP_BLOCK))
        if not part:
            raise ShortReadError(f"Unexpected end of stream: wanted {size} bytes, got {len(buf)}")
        buf += part
    return bytes(buf)


def skip_bytes(fp: BinaryIO, size: int) -> None:
    """
    Consume `size` bytes from the stream by reading them.
    """
    remaining = int(size)
    while remaining > 0:
        part = fp.read(min(remaining, _SKIP_BLOCK))
        if not part:
            raise ShortReadError(f"Unexpected end of stream while skipping {size} bytes")
        remaining -= len(part)


def read_chunk_header(fp: BinaryIO) -> ChunkHeader:
    tag, size = CHUNK_HEADER.unpack(read_exact(fp, CHUNK_HEADER.size))
    return ChunkHeader(tag=tag, size=int(size))


# ===================== Chunk scanning =====================

def scan_chunk(fp: BinaryIO, tag: bytes) -> ChunkHeader:
    """
    Advance the stream to the payload of the next chunk tagged `tag`.

    Unrelated chunks are skipped including their pad byte, so a chunk that
    declares 5 bytes consumes 6. There is no limit on how far the scan goes;
    a missing chunk ends with ChunkNotFoundError once the stream runs out.

    Parameters
    ----------
    fp : BinaryIO
        Stream positioned on a chunk header.
    tag : bytes
        Four-byte chunk identifier, e.g. b"COMM".

    Returns
    -------
    ChunkHeader
        Header of the matching chunk; the stream is left at its payload.
    """
    while True:
        try:
            chunk = read_chunk_header(fp)
        except ShortReadError as exc:
            raise ChunkNotFoundError(f"Chunk {tag.decode('latin-1')!r} not found: {exc}") from exc

        if chunk.tag == tag:
            return chunk
        if chunk.size < 0:
            raise FormatError(f"Chunk {chunk.name!r} has negative size {chunk.size}")

        logger.debug("Skipping chunk %r (%d bytes, %d padded)", chunk.name, chunk.size, chunk.padded_size)
        try:
            skip_bytes(fp, chunk.padded_size)
        except ShortReadError as exc:
            raise ChunkNotFoundError(f"Chunk {tag.decode('latin-1')!r} not found: {exc}") from exc


# ===================== Container validation =====================

def read_container_header(fp: BinaryIO) -> ContainerHeader:
    """
    Read and validate the top-level FORM header.
    """
    chunk = read_chunk_header(fp)
    if chunk.tag != TAG_FORM:
        raise FormatError("Invalid file format: not an AIFF file (missing FORM header)")

    (form_type,) = FORM_TYPE.unpack(read_exact(fp, FORM_TYPE.size))
    if form_type not in FORM_TYPES:
        raise FormatError(f"Invalid file format: unknown form type {form_type!r}")
    return ContainerHeader(chunk=chunk, form_type=form_type)


def read_common_chunk(fp: BinaryIO) -> CommonChunk:
    """
    Scan to COMM and decode its fixed fields.

    The stream is left right after the sample-rate field, which is where the
    AIFC compression fields start.
    """
    scan_chunk(fp, TAG_COMM)
    raw = read_exact(fp, COMMON_FIELDS.size + EXTENDED.size)
    num_channels, num_frames, sample_size = COMMON_FIELDS.unpack_from(raw, 0)
    rate = unpack_extended(raw, COMMON_FIELDS.size)

    if num_channels <= 0:
        raise FormatError(f"Invalid channel count: {num_channels}")
    if sample_size not in SUPPORTED_SAMPLE_SIZES:
        raise UnsupportedFormatError(f"Sample size must be 8-bit or 16-bit, got {sample_size}")

    return CommonChunk(
        num_channels=int(num_channels),
        num_sample_frames=int(num_frames),
        sample_size=int(sample_size),
        sample_rate_raw=rate,
    )


def read_compression_header(fp: BinaryIO) -> CompressionHeader:
    """
    Read the AIFC compression fields that follow the common fields in COMM.

    The compression name is a Pascal string: one length byte plus the text,
    padded so the pair spans an even number of bytes.
    """
    compression_type, name_size = COMPRESSION_FIELDS.unpack(read_exact(fp, COMPRESSION_FIELDS.size))
    if compression_type not in PCM_COMPRESSION_TYPES:
        raise UnsupportedFormatError(
            f"Invalid file format: must be uncompressed PCM, got compression {compression_type!r}"
        )

    padded_string_size = (int(name_size) + 2) & ~1
    rest = read_exact(fp, padded_string_size - 1)
    name = rest[: int(name_size)]
    logger.debug("AIFC compression %r (%r)", compression_type, name)
    return CompressionHeader(compression_type=compression_type, name_size=int(name_size), name=name)


# ===================== Sound data =====================

def read_sound_data_header(fp: BinaryIO) -> SoundDataHeader:
    scan_chunk(fp, TAG_SSND)
    offset, block_size = SOUND_DATA_FIELDS.unpack(read_exact(fp, SOUND_DATA_FIELDS.size))
    if offset != 0 or block_size != 0:
        raise UnsupportedFormatError(
            f"Non-zero offset/blockSize is not supported (offset={offset}, blockSize={block_size})"
        )
    return SoundDataHeader(offset=int(offset), block_size=int(block_size))


def read_first_channel(fp: BinaryIO, common: CommonChunk) -> np.ndarray:
    """
    Read every sample frame and keep only channel 0.

    Returns
    -------
    np.ndarray
        Shape (num_sample_frames,). uint8 raw byte values for 8-bit input,
        int16 for 16-bit input.
    """
    frames = int(common.num_sample_frames)
    channels = int(common.num_channels)
    width = common.sample_width

    raw = read_exact(fp, frames * channels * width)
    dtype = np.uint8 if common.sample_size == 8 else ">i2"
    data = np.frombuffer(raw, dtype=dtype).reshape(frames, channels)
    if common.sample_size == 8:
        return data[:, 0].copy()
    return data[:, 0].astype(np.int16)


def parse_aiff(fp: BinaryIO) -> Tuple[AiffInfo, np.ndarray]:
    """
    Parse a whole container and return its header summary and channel-0 samples.
    """
    container = read_container_header(fp)
    common = read_common_chunk(fp)

    compression = None
    if container.compressed:
        compression = read_compression_header(fp)

    read_sound_data_header(fp)
    samples = read_first_channel(fp, common)
    info = AiffInfo(form_type=container.form_type, common=common, compression=compression)
    return info, samples

"""Anvil (``.mca``) map reader built on the ``NBT`` package."""

from __future__ import annotations

import struct
import typing as t

from nbt.nbt import TAG, TAG_Compound, TAG_List, MalformedFileError
from nbt.region import RegionFile, RegionFileFormatError

from stashfinder.errors import ChunkDecodeError, RegionDecodeError
from stashfinder.reader.base import MapReader, RegionRef
from stashfinder.utils import get_logger

logger = get_logger(__name__)


def unwrap(tag: t.Any) -> t.Any:
    """Convert an NBT tag tree into plain dicts, lists and scalars."""
    if isinstance(tag, TAG_Compound):
        return {child.name: unwrap(child) for child in tag.tags}
    if isinstance(tag, TAG_List):
        return [unwrap(child) for child in tag.tags]
    if isinstance(tag, TAG):
        value = tag.value
        if isinstance(value, (bytes, bytearray)):
            return list(value)
        return value
    return tag


def _block_entity_tags(chunk: TAG_Compound) -> t.List[TAG]:
    # 1.18+ stores block entities at the chunk root
    if "block_entities" in chunk:
        return list(chunk["block_entities"].tags)
    if "Level" in chunk:
        level = chunk["Level"]
        if "TileEntities" in level:
            return list(level["TileEntities"].tags)
    return []


class NbtMapReader(MapReader):
    suffix = ".mca"

    def chunks(self, region: RegionRef) -> t.Iterator[t.Any]:
        try:
            fh = open(region.path, "rb")
        except OSError as e:
            raise RegionDecodeError(f"cannot open region file: {e}", region.label) from e
        with fh:
            try:
                rf = RegionFile(fileobj=fh)
                metadata = rf.get_metadata()
            except (RegionFileFormatError, MalformedFileError, struct.error, OSError) as e:
                raise RegionDecodeError(f"corrupt region header: {e}", region.label) from e

            for m in metadata:
                try:
                    chunk = rf.get_nbt(m.x, m.z)
                except Exception as e:
                    # the NBT parser raises bare KeyError on unknown tag types
                    yield ChunkDecodeError(f"chunk ({m.x}, {m.z}): {e}", region.label)
                    continue
                yield chunk

    def block_entities(self, chunk: t.Any) -> t.Iterator[t.Mapping[str, t.Any]]:
        for tag in _block_entity_tags(chunk):
            yield unwrap(tag)

"""
L4 Execution — Debian package reader.

A ``.deb`` is an ``ar`` container holding ``debian-binary``,
``control.tar.*`` and ``data.tar.*``. Only the data payload matters
here. The payload codec (plain, gzip, xz, zstd) is chosen by suffix.
"""

from __future__ import annotations

import logging
import tarfile
from dataclasses import dataclass
from pathlib import Path

import zstandard as zstd

from binvault.core.services.provision.errors import ArchiveFormatError

logger = logging.getLogger(__name__)

AR_MAGIC = b"!<arch>\n"
_HEADER_SIZE = 60
_FMAG = b"`\n"


@dataclass(frozen=True)
class ArMember:
    """One member of an ``ar`` archive: name, data offset and size."""

    name: str
    offset: int
    size: int


def read_ar_members(path: Path) -> list[ArMember]:
    """List the members of an ``ar`` archive without reading their data.

    Raises:
        ArchiveFormatError: bad magic or a truncated/corrupt header.
    """
    members: list[ArMember] = []
    with open(path, "rb") as f:
        if f.read(len(AR_MAGIC)) != AR_MAGIC:
            raise ArchiveFormatError(f"{path.name} is not an ar archive")
        while True:
            header = f.read(_HEADER_SIZE)
            if not header:
                break
            if len(header) < _HEADER_SIZE or header[58:60] != _FMAG:
                raise ArchiveFormatError(f"Corrupt ar header in {path.name}")
            name = header[0:16].decode("ascii", errors="replace").strip()
            # GNU ar terminates names with "/"
            name = name.rstrip("/") or name
            try:
                size = int(header[48:58].decode("ascii").strip())
            except ValueError as e:
                raise ArchiveFormatError(f"Bad member size in {path.name}") from e
            members.append(ArMember(name=name, offset=f.tell(), size=size))
            # Member data is padded to an even offset
            f.seek(size + (size % 2), 1)
    return members


def extract_ar_member(path: Path, member: ArMember, dest: Path) -> Path:
    """Copy one member's bytes to ``dest``."""
    with open(path, "rb") as src, open(dest, "wb") as out:
        src.seek(member.offset)
        remaining = member.size
        while remaining > 0:
            chunk = src.read(min(remaining, 64 * 1024))
            if not chunk:
                raise ArchiveFormatError(f"Truncated member {member.name} in {path.name}")
            out.write(chunk)
            remaining -= len(chunk)
    return dest


def extract_deb_payload(deb: Path, work_dir: Path) -> Path:
    """Pull the ``data.tar*`` member of ``deb`` into ``work_dir``.

    Returns:
        Path of the extracted payload file (suffix preserved).
    """
    member = next((m for m in read_ar_members(deb) if m.name.startswith("data.tar")), None)
    if member is None:
        raise ArchiveFormatError(f"No data archive in {deb.name}")
    return extract_ar_member(deb, member, work_dir / member.name)


def extract_payload(payload: Path, dest: Path, prefix: str = "") -> list[str]:
    """Extract a ``data.tar[.gz|.xz|.zst]`` payload into ``dest``.

    Args:
        payload: The payload file from :func:`extract_deb_payload`.
        dest: Destination directory.
        prefix: When set, only members under this path are extracted.

    Returns:
        Names of the extracted members.
    """
    dest.mkdir(parents=True, exist_ok=True)
    tar_path = payload
    if payload.name.endswith(".zst"):
        tar_path = payload.with_suffix("")
        dctx = zstd.ZstdDecompressor()
        try:
            with open(payload, "rb") as ifh, open(tar_path, "wb") as ofh:
                dctx.copy_stream(ifh, ofh)
        except zstd.ZstdError as e:
            raise ArchiveFormatError(f"Cannot decompress {payload.name}: {e}") from e

    want = prefix.strip("/")
    extracted: list[str] = []
    try:
        with tarfile.open(tar_path, "r:*") as tf:
            for m in tf:
                name = m.name.removeprefix("./")
                if want and not (name == want or name.startswith(f"{want}/")):
                    continue
                try:
                    tf.extract(m, dest, filter="data")
                except tarfile.FilterError as e:
                    logger.debug("Skipping payload member %s: %s", m.name, e)
                    continue
                extracted.append(name)
    except tarfile.TarError as e:
        raise ArchiveFormatError(f"Cannot extract {payload.name}: {e}") from e
    finally:
        if tar_path != payload:
            tar_path.unlink(missing_ok=True)
    return extracted


from __future__ import annotations

import base64

from ..ingest.error_handling import UnreadableAssetError
from ..types import EmbeddedAsset, ResolvedAsset
from .classify import mime_type_for


def encode_data_uri(data: bytes, mime_type: str) -> str:
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{b64}"


def embed_image(asset: ResolvedAsset, *, max_bytes: int | None = None) -> EmbeddedAsset:
    """Read an image once and build its data URI.

    Raises:
        UnreadableAssetError: the file cannot be read or is larger than ``max_bytes``
    """

    if max_bytes is not None and asset.size_bytes > max_bytes:
        raise UnreadableAssetError(
            asset.absolute_path, reason=f"{asset.size_bytes} bytes exceeds limit of {max_bytes}"
        )
    try:
        data = asset.absolute_path.read_bytes()
    except OSError as exc:
        raise UnreadableAssetError(asset.absolute_path, cause=exc) from exc

    # The file may have grown between resolution and read
    if max_bytes is not None and len(data) > max_bytes:
        raise UnreadableAssetError(
            asset.absolute_path, reason=f"{len(data)} bytes exceeds limit of {max_bytes}"
        )

    mime_type = mime_type_for(asset.declared_extension)
    return EmbeddedAsset(
        reference=asset.reference,
        mime_type=mime_type,
        data_uri=encode_data_uri(data, mime_type),
    )

from pathlib import Path

from typing import Tuple, Union

from voice_anonymizer.mime import mime_type_for_suffix



def read_clip(path: Union[str, Path]) -> Tuple[bytes, str]:
    """Raw bytes of a recorded clip plus the MIME type implied by its suffix."""

    path = Path(path)

    return path.read_bytes(), mime_type_for_suffix(path.suffix)



def write_clip(path: Union[str, Path], data: bytes) -> None:

    path = Path(path)

    path.parent.mkdir(parents=True, exist_ok=True)

    path.write_bytes(data)

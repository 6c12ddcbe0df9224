"""
Crop extraction worker for background processing (Qt-free).

Once a session is confirmed its transform is a frozen ``CropSnapshot``, so
the slow part (decode, normalize, crop, resize, encode) can run in a child
process spawned by ``concurrent.futures.ProcessPoolExecutor``.  This module
must **never** import PyQt6; doing so can crash or hang on some platforms.
"""

from dataclasses import asdict
from pathlib import Path

from pan_zoom_crop.config import JPEG_QUALITY_DEFAULT, PNG_COMPRESS_LEVEL
from pan_zoom_crop.extractor import extract_snapshot
from pan_zoom_crop.image_io import load_image_source, save_image
from pan_zoom_crop.models import CropSnapshot


def build_worker_args(
    index: int,
    path: Path,
    snapshot: CropSnapshot,
    output_path: Path,
    output_size: tuple[int, int] | None = None,
    export: dict | None = None,
) -> dict:
    """Build serializable arguments for ``extract_worker``."""
    return {
        "index": index,
        "path": str(path),
        "snapshot": asdict(snapshot),
        "output_path": str(output_path),
        "output_size": tuple(output_size) if output_size else None,
        "export": export or {},
    }


def extract_worker(args: dict) -> dict:
    """Worker function for background extraction. Runs in a separate process."""
    idx = args["index"]
    img_path = Path(args["path"])
    output_path = Path(args["output_path"])
    output_size = args.get("output_size")
    export = args.get("export", {})

    quality = export.get("jpeg_quality", JPEG_QUALITY_DEFAULT)
    compress = export.get("compress_level", PNG_COMPRESS_LEVEL)

    try:
        snapshot = CropSnapshot(**args["snapshot"])
        source = load_image_source(img_path)
        cropped = extract_snapshot(source, snapshot, output_size)
        written = save_image(cropped, output_path, quality=quality, compress_level=compress)
        return {"index": idx, "success": True, "name": img_path.name, "output": str(written)}
    except Exception as e:
        return {"index": idx, "success": False, "name": img_path.name, "error": str(e)}

"""
Google Cloud Storage helper for the order pipeline.
Reads and writes JSON state files (the order details checkpoint, the local
orders snapshot) in a GCS bucket.

Supports local filesystem fallback for development:
    Set USE_LOCAL_STORAGE=true in .env to use local filesystem instead of GCS.
"""

import os
import json
import tempfile
from typing import Any, Optional


# ============== Storage Mode Detection ==============

USE_LOCAL_STORAGE = os.environ.get('USE_LOCAL_STORAGE', 'false').lower() == 'true'
LOCAL_STORAGE_DIR = os.environ.get('LOCAL_STORAGE_DIR',
    os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'data'))

# Bucket name - can be overridden via environment variable
BUCKET_NAME = os.environ.get('GCS_BUCKET', 'order-pipeline-files')

STATE_FOLDER = 'state'


class StateFileCorrupt(ValueError):
    """A state file exists but cannot be read as JSON."""


# ============== Local Filesystem Storage ==============

def local_path(filepath: str) -> str:
    """Resolve a state path on disk. Absolute paths are used as given."""
    if os.path.isabs(filepath):
        return filepath
    return os.path.join(os.path.abspath(LOCAL_STORAGE_DIR), filepath)


def _local_save_json(filepath: str, data) -> bool:
    full = local_path(filepath)
    directory = os.path.dirname(full) or '.'
    os.makedirs(directory, exist_ok=True)

    # Readers only ever see a complete snapshot
    fd, temp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        os.replace(temp_path, full)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
    return True


def _local_load_json(filepath: str):
    full = local_path(filepath)
    if not os.path.exists(full):
        return None
    try:
        with open(full, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StateFileCorrupt(f"{full} is not valid JSON: {e}") from e
    except OSError as e:
        raise StateFileCorrupt(f"{full} could not be read: {e}") from e


# ============== GCS Functions ==============

def get_client():
    """Get GCS client. Uses default credentials in Cloud Run."""
    if USE_LOCAL_STORAGE:
        return None
    from google.cloud import storage
    return storage.Client()


def get_bucket():
    """Get the pipeline bucket."""
    if USE_LOCAL_STORAGE:
        return None
    client = get_client()
    return client.bucket(BUCKET_NAME)


def describe_location(filepath: str) -> str:
    """Human readable location of a state file, for progress output."""
    if USE_LOCAL_STORAGE:
        return local_path(filepath)
    return f"gs://{BUCKET_NAME}/{filepath}"


def save_json(filepath: str, data: Any) -> bool:
    """
    Save a JSON document, pretty-printed, replacing any previous version.

    Args:
        filepath: Path relative to the local storage dir / bucket root
        data: JSON-serializable data

    Returns:
        True if saved. Write failures raise.
    """
    if USE_LOCAL_STORAGE:
        return _local_save_json(filepath, data)

    bucket = get_bucket()
    blob = bucket.blob(filepath)
    blob.upload_from_string(json.dumps(data, indent=2), content_type='application/json')
    return True


def load_json(filepath: str) -> Optional[Any]:
    """
    Load a JSON document.

    Returns:
        Parsed data, or None if the file does not exist

    Raises:
        StateFileCorrupt: if the file exists but cannot be read or is
            not valid JSON
    """
    if USE_LOCAL_STORAGE:
        return _local_load_json(filepath)

    from google.cloud.exceptions import NotFound

    bucket = get_bucket()
    blob = bucket.blob(filepath)

    try:
        json_data = blob.download_as_text()
    except NotFound:
        print(f"[GCS] No state found at {filepath}")
        return None
    except UnicodeDecodeError as e:
        raise StateFileCorrupt(f"gs://{BUCKET_NAME}/{filepath} is not UTF-8 text: {e}") from e

    try:
        return json.loads(json_data)
    except json.JSONDecodeError as e:
        raise StateFileCorrupt(f"gs://{BUCKET_NAME}/{filepath} is not valid JSON: {e}") from e

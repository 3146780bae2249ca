import os
from pathlib import Path

from config import MESH_EXTENSIONS, OUTPUT_SUFFIX, PARTIAL_SUFFIX
from findFile import is_translated_output
from logUtils import log_with_timestamp


def delete_files(paths):
    """Delete the given files; missing files are ignored. Returns the deleted paths."""
    deleted = []
    for file_path in paths:
        try:
            os.remove(file_path)
        except FileNotFoundError:
            continue
        except OSError as e:
            log_with_timestamp(f"Error deleting {file_path}: {e}")
            continue
        deleted.append(str(file_path))
        log_with_timestamp(f"Deleted: {file_path}")
    return deleted


def find_outputs(root_dir, suffix=OUTPUT_SUFFIX, extensions=None):
    """
    Find translated files and leftover partial files from previous runs.

    name_tr.obj only counts as output when name.obj is next to it; a tile that
    merely happens to end in the suffix is a source and is never returned.
    """
    if extensions is None:
        extensions = MESH_EXTENSIONS
    extensions = [ext.lower() for ext in extensions]

    outputs = []
    for dirpath, _dirnames, filenames in os.walk(root_dir):
        siblings = set(filenames)
        for filename in filenames:
            name = filename
            partial = name.endswith(PARTIAL_SUFFIX)
            if partial:
                name = name[:-len(PARTIAL_SUFFIX)]
            stem, ext = os.path.splitext(name)
            if ext.lower() not in extensions or not stem.endswith(suffix):
                continue
            if partial or is_translated_output(name, siblings, suffix):
                outputs.append(str(Path(dirpath) / filename))
    return sorted(outputs)


def delete_outputs(root_dir, suffix=OUTPUT_SUFFIX, extensions=None):
    """Remove the results of previous runs under root_dir."""
    return delete_files(find_outputs(root_dir, suffix, extensions))

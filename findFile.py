import os
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path

from config import MESH_EXTENSIONS, METADATA_FILENAME, OUTPUT_SUFFIX
from objErrors import PathUnreadable


@dataclass
class DiscoveryResult:
    files: list = field(default_factory=list)
    # (path, reason) for subdirectories that could not be read
    skipped: list = field(default_factory=list)

    def __len__(self):
        return len(self.files)

    def __iter__(self):
        return iter(self.files)


def find_obj_files(root_path, extensions=None, output_suffix=OUTPUT_SUFFIX):
    """
    Recursively find mesh files under a root directory.

    Args:
        root_path (str): Root directory path to search
        extensions (list): File extensions to search for (default: ['.obj'])
        output_suffix (str): Stem suffix of translated files; name_tr.obj is left
                             out when name.obj sits next to it, so a second
                             run doesn't translate its own output

    Returns:
        DiscoveryResult: Sorted matching paths plus the subdirectories that
                         had to be skipped

    Raises:
        PathUnreadable: the root does not exist or cannot be listed
    """
    if extensions is None:
        extensions = MESH_EXTENSIONS

    # Convert to lowercase for case-insensitive matching
    extensions = [ext.lower() for ext in extensions]

    root = Path(root_path)
    if not root.exists():
        raise PathUnreadable(root_path, "does not exist")
    if not root.is_dir():
        raise PathUnreadable(root_path, "not a directory")
    try:
        with os.scandir(root):
            pass
    except OSError as e:
        raise PathUnreadable(root_path, e.strerror or e) from e

    result = DiscoveryResult()

    def on_error(error):
        result.skipped.append((str(error.filename), error.strerror or str(error)))

    for dirpath, _dirnames, filenames in os.walk(root, onerror=on_error):
        siblings = set(filenames)
        for filename in filenames:
            ext = os.path.splitext(filename)[1]
            if ext.lower() not in extensions:
                continue
            if is_translated_output(filename, siblings, output_suffix):
                continue
            result.files.append(os.path.join(dirpath, filename))

    result.files.sort()
    return result


def is_translated_output(filename, siblings, output_suffix=OUTPUT_SUFFIX):
    """True when filename is name_tr.ext and name.ext is among siblings."""
    if not output_suffix:
        return False
    stem, ext = os.path.splitext(filename)
    if not stem.endswith(output_suffix) or stem == output_suffix:
        return False
    return stem[:-len(output_suffix)] + ext in siblings


def find_metadata(directory, filename=METADATA_FILENAME):
    """Return the metadata document in directory, or None when there is none."""
    candidate = Path(directory) / filename
    if candidate.is_file():
        return str(candidate)
    return None


def group_by_directory(paths):
    """
    Group file paths by their parent directory.

    Returns:
        list: List of lists, each containing the sorted files of one directory
    """
    files_by_dir = defaultdict(list)
    for path in paths:
        files_by_dir[str(Path(path).parent)].append(str(path))

    result = []
    for directory in sorted(files_by_dir.keys()):
        result.append(sorted(files_by_dir[directory]))
    return result

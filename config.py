"""
Configuration constants for the OBJ vertex translator.

Every value here can be overridden from the command line (see main.py).
"""

# Suffix appended to the stem of every translated file: name.obj -> name_tr.obj
OUTPUT_SUFFIX = "_tr"

# Marker appended to the output while it is being written
PARTIAL_SUFFIX = ".partial"

# Mesh files picked up by the discoverer
MESH_EXTENSIONS = ['.obj']

# Metadata document expected in the selected directory
METADATA_FILENAME = "metadata.xml"

# XML elements holding the origin offset and the spatial reference system
ORIGIN_FIELD = "SRSOrigin"
SRS_FIELD = "SRS"

# Emit a progress event every N processed lines
PROGRESS_INTERVAL_LINES = 100_000

# Seconds between two polls of the progress channel (5x per second)
POLL_INTERVAL = 0.2

import os

# ------------------------
# App Information
# ------------------------
APP_NAME = "RecycleBin"
APP_VERSION = "1.0.0"
DEVELOPER = "KuzuiYaridomi"

# ------------------------
# Paths
# ------------------------
# Trash folder lives in the user's home directory; created lazily on first trash
TRASH_DIR = os.path.join(os.path.expanduser("~"), "RecycleBin_Trash")

# Index sits beside the trash folder, not inside it (every entry in there is an item)
DB_PATH = TRASH_DIR + ".db"

# Where restored files go when neither --to nor the original location is known
RESTORE_DIR = os.path.join(os.path.expanduser("~"), "Downloads")

# ------------------------
# Copy Settings
# ------------------------
COPY_CHUNK_SIZE = 1024 * 1024  # 1 MB chunks to save memory

# ------------------------
# Naming
# ------------------------
COLLISION_POLICY = "rename"  # "rename" -> "a (1).txt", "reject" -> NameCollision

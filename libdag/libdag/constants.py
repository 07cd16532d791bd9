"""Constants shared across libdag."""

DEFAULT_BRANCH = 'master'
DEFAULT_REPO_DIR = '.dag'
DEFAULT_REMOTE = 'origin'
DEFAULT_AUTHOR = 'libdag'

HASH_LENGTH = 40
HASH_CHARSET = '0123456789abcdef'

HEAD_FILE = 'HEAD'
INDEX_FILE = 'index'
CONFIG_FILE = 'config'
MERGE_HEAD_FILE = 'MERGE_HEAD'
MERGE_MSG_FILE = 'MERGE_MSG'

OBJECTS_SUBDIR = 'objects'
REFS_DIR = 'refs'
HEADS_DIR = 'heads'
REMOTES_DIR = 'remotes'

CONFLICT_START = b'<<<<<<< ours\n'
CONFLICT_MIDDLE = b'=======\n'
CONFLICT_END = b'>>>>>>> theirs\n'

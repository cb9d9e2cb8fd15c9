"""Constants used across libtwig."""

DEFAULT_REPO_DIR = '.twig'
DEFAULT_BRANCH = 'master'

OBJECTS_SUBDIR = 'objects'
COMMITS_SUBDIR = 'commits'
REFS_DIR = 'refs'
HEADS_DIR = 'heads'
HEAD_FILE = 'HEAD'
INDEX_FILE = 'index'
REMOVED_FILE = 'removed'
REMOTES_FILE = 'remotes'

HASH_LENGTH = 40
HASH_CHARSET = '0123456789abcdef'
FANOUT_LENGTH = 2

SYMREF_PREFIX = 'ref: '

INITIAL_COMMIT_MESSAGE = 'initial commit'
INITIAL_COMMIT_TIMESTAMP = 0.0

CONFLICT_START_MARKER = '<<<<<<<'
CONFLICT_MID_MARKER = '======='
CONFLICT_END_MARKER = '>>>>>>>'
CONFLICT_CURRENT_LABEL = 'HEAD'

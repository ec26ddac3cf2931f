# Fixed XOR constant applied to the SHA-256 of the publication card string.
# It is baked into every reader, so it only obfuscates content; it is not a secret.
CARD_HASH_XOR_KEY = bytes.fromhex(
    "11cbb5587e32846d4c26790c633da289f66fe5842a3a585ce1bc3a294af5ada7"
)

CARD_HASH_SIZE = 32
KEY_SIZE = 16
IV_SIZE = 16

# Content codec defaults (zlib stream, AES-128-CBC)
DEFAULT_COMPRESS_LEVEL = 6

# Store layout
PUBLICATION_ID = 1
ROOT_VIEW_ITEM_ID = 1
ROOT_PARENT_ID = -1
NO_DOCUMENT_ID = -1
MEPS_DOCUMENT_ID_BASE = 12_000_000
DEFAULT_LOCALE = "en_US"

# Document row defaults
DOCUMENT_CLASS = "13"
DOCUMENT_PARAGRAPH_COUNT = 254

# Multimedia row defaults
MEDIA_DATA_TYPE = 0
MEDIA_MAJOR_TYPE = 1
MEDIA_MINOR_TYPE = 1
MEDIA_CATEGORY_TYPE = -1

# Publication metadata
PUBLICATION_VERSION_NUMBER = 8
PUBLICATION_TYPE_ID = 1
PUBLICATION_TYPE = "Manual/Guidelines"
PUBLICATION_CATEGORY = "manual"
PUBLICATION_ATTRIBUTE = "PERSONAL"
PUBLICATION_VIEW_NAME = "JW App Publication"
PUBLICATION_VIEW_SYMBOL = "jwpub"
BIBLE_VERSION_FOR_CITATIONS = "NWTR"
UNDATED_TEXT_OFFSET = 19691231
DEFAULT_BUILD_NUMBER = 12345

# Container layout
CONTENTS_ENTRY = "contents"
MANIFEST_ENTRY = "manifest.json"
DB_SUFFIX = ".db"
CONTAINER_SUFFIX = ".jwpub"

# Manifest constants
MANIFEST_VERSION = 1
CONTENT_FORMAT = "z-a"
MEPS_PLATFORM_VERSION = 2.1
MIN_PLATFORM_VERSION = 1
SCHEMA_VERSION = 8

"""VMSS suspended-state protocol constants.

Container magics, tag code bit fields and the struct layouts of the header,
group table, index and block fields. The scanner and the writer both build
on these, so a layout change here changes both sides at once.

All integers are little-endian (the producer is x86).
"""

# Container magics
VMSS_MAGIC_OLD = 0xBED0BED0  # 32-bit container, unsupported
VMSS_MAGIC_RESTORED = 0xBED1BED1
VMSS_MAGIC = 0xBED2BED2
VMSS_MAGIC_PARTIAL = 0xBED3BED3

SUPPORTED_MAGICS = (VMSS_MAGIC, VMSS_MAGIC_RESTORED, VMSS_MAGIC_PARTIAL)

# Header: [Magic(4) | Version(4) | NumGroups(4)] = 12 bytes
HEADER_FMT = "<III"
HEADER_LEN = 12

# Group descriptor: [Name(64) | Offset(8) | Size(8)] = 80 bytes
GROUP_NAMELEN = 64
GROUP_FMT = "<64sQQ"
GROUP_LEN = 80

# Tag code: [NameLen 8 bits | NumIndex 2 bits | ValueSize 6 bits]
TAG_FMT = "<H"
TAG_LEN = 2

TAG_NAMELEN_MASK = 0xFF
TAG_NAMELEN_SHIFT = 8
TAG_NINDX_MASK = 0x3
TAG_NINDX_SHIFT = 6
TAG_VALSIZE_MASK = 0x3F
TAG_VALSIZE_SHIFT = 0

TAG_NULL = 0  # Stream terminator

# Reserved value sizes
TAG_VALSIZE_BLOCK_COMPRESSED = 0x3E
TAG_VALSIZE_BLOCK = 0x3F

# Largest inline value size
TAG_VALSIZE_MAX = TAG_VALSIZE_BLOCK_COMPRESSED - 1

INDEX_FMT = "<I"
INDEX_LEN = 4
MAX_INDICES = TAG_NINDX_MASK

# Block header: [Size(8) | MemSize(8)] then a separate [Pad(2)]
BLOCK_FMT = "<QQ"
BLOCK_LEN = 16
BLOCK_PAD_FMT = "<H"
BLOCK_PAD_LEN = 2

# Patch target
CPU_GROUP = "cpu"
PENDING_NMI_TAG = "pendingNMI"
PENDING_NMI_SIZE = 1

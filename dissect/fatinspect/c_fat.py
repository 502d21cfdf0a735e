from dissect import cstruct

# https://download.microsoft.com/download/1/6/1/161ba512-40e2-4cc9-843a-923143f3456c/fatgen103.doc
c_fat_def = """
#define ATTR_READ_ONLY 0x01
#define ATTR_HIDDEN    0x02
#define ATTR_SYSTEM    0x04
#define ATTR_VOLUME_ID 0x08
#define ATTR_DIRECTORY 0x10
#define ATTR_ARCHIVE   0x20
#define ATTR_LONG_NAME (ATTR_READ_ONLY | ATTR_HIDDEN | ATTR_SYSTEM | ATTR_VOLUME_ID)

struct BootSector {
    uint8_t  BS_jmpBoot[3];    /* 0x000: jump instruction to boot code */
    char     BS_OEMName[8];    /* 0x003: "MSWIN4.1" */
    uint16_t BPB_BytsPerSec;   /* 0x00B: bytes per sector */
    uint8_t  BPB_SecPerClus;   /* 0x00D: sectors per cluster */
    uint16_t BPB_RsvdSecCnt;   /* 0x00E: number of reserved sectors */
    uint8_t  BPB_NumFATs;      /* 0x010: count of FATs on the volume */
    uint16_t BPB_RootEntCnt;   /* 0x011: count of root directory entries */
    uint16_t BPB_TotSec16;     /* 0x013: total count of sectors */
    uint8_t  BPB_Media;        /* 0x015: media type */
    uint16_t BPB_FATSz16;      /* 0x016: sectors occupied by one fat */
    uint16_t BPB_SecPerTrk;    /* 0x018: sectors per track for Int 0x13 */
    uint16_t BPB_NumHeads;     /* 0x01A: numbers of heads for Int 0x13 */
    uint32_t BPB_HiddSec;      /* 0x01C: count of sectors preceding the partition */
    uint32_t BPB_TotSec32;     /* 0x020: total count of all sectors of the volume */
    char     BS_Code[474];     /* 0x024: extended BPB and boot code, not decoded */
    uint16_t BS_Signature;     /* 0x1FE: 0xAA55 */
};

struct Dirent {
    char     DIR_Name[11];     /* 0x00: 8.3 name, space padded */
    uint8_t  DIR_Attr;         /* 0x0B */
    uint8_t  DIR_NTRes;        /* 0x0C */
    uint8_t  DIR_CrtTimeTenth; /* 0x0D */
    uint16_t DIR_CrtTime;      /* 0x0E */
    uint16_t DIR_CrtDate;      /* 0x10 */
    uint16_t DIR_LstAccDate;   /* 0x12 */
    uint16_t DIR_FstClusHI;    /* 0x14: always 0 on FAT12/16 */
    uint16_t DIR_WrtTime;      /* 0x16 */
    uint16_t DIR_WrtDate;      /* 0x18 */
    uint16_t DIR_FstClusLO;    /* 0x1A */
    uint32_t DIR_FileSize;     /* 0x1C */
};
"""  # noqa: E501

c_fat = cstruct.cstruct()
c_fat.load(c_fat_def)

BOOT_SECTOR_SIZE = 0x200
BOOT_SIGNATURE = 0xAA55

DIR_ENTRY_SIZE = 32

# Clusters 0 and 1 are reserved, the data region starts at cluster 2
DATA_CLUSTER_MIN = 0x2
FREE_CLUSTER = 0x0

# Directory tables are located with a fixed sector size, regardless of BPB_BytsPerSec
CLUSTER_SECTOR_SIZE = 512

# Every subdirectory table starts with the "." and ".." entries
DOT_ENTRIES_SIZE = 2 * DIR_ENTRY_SIZE

END_OF_DIRECTORY = 0x00
DELETED_ENTRY = 0xE5
DOT_ENTRY = 0x2E

ATTRIBUTE_LABELS = (
    (c_fat.ATTR_READ_ONLY, "Read-only"),
    (c_fat.ATTR_HIDDEN, "Hidden"),
    (c_fat.ATTR_SYSTEM, "System"),
    (c_fat.ATTR_VOLUME_ID, "Volume label"),
    (c_fat.ATTR_LONG_NAME, "Long file name"),
    (c_fat.ATTR_DIRECTORY, "Directory"),
    (c_fat.ATTR_ARCHIVE, "Archive"),
)

ERRORS = {
  "E_OPEN": "Unable to open VMSS file",
  "E_MAGIC_OLD": "Can't read 32-bit VMSS file",
  "E_MAGIC_UNKNOWN": "Not recognized as a VMSS file",
  "E_SHORT_READ": "Short read",
  "E_SEEK": "Seek out of range",
  "E_WRITE": "Write failed",
  "E_IO": "I/O error",
  "E_SCHEMA": "Record does not match expected layout",
}

PROG = "vmss-nmi"

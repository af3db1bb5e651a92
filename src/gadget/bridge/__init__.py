"""Device-bridge (adb) access: command execution, enumeration, and change tracking."""

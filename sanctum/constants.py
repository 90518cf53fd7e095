"""Constant names, paths and version information shared across the project."""

from __future__ import annotations

from dataclasses import dataclass

# Device names; these all end with the same name.
NT_DEVICE_NAME = "\\Device\\SanctumEDR"
DOS_DEVICE_NAME = "\\??\\SanctumEDR"
DRIVER_UM_NAME = "\\\\.\\SanctumEDR"

SYS_INSTALL_RELATIVE_LOC = "sanctum.sys"
SVC_NAME = "Sanctum"
PIPE_NAME = r"\\.\pipe\sanctum_um_engine_pipe"
PIPE_NAME_FOR_DRIVER = r"\??\pipe\sanctum_um_engine_pipe"

# Pipes used by the user mode components.
PIPE_FOR_INJECTED_DLL = r"\\.\pipe\sanctum_pipe_injected_dll"
PIPE_FOR_ETW = r"\\.\pipe\sanctum_pipe_etw_recv"
PIPE_FOR_GUI = r"\\.\pipe\sanctum_gui_recv"


@dataclass(frozen=True)
class SanctumVersion:
    """A release version: major, minor and patch numbers plus a release name."""

    major: int
    minor: int
    patch: int
    name: str

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch} - {self.name}"


RELEASE_NAME = "Sanctify"
VERSION_DRIVER = SanctumVersion(major=0, minor=0, patch=2, name="Light's Resolve")
VERSION_CLIENT = SanctumVersion(major=0, minor=0, patch=2, name="Light's Resolve")

# User mode locations, relative to the application data directory.
SANC_SYS_FILE_LOCATION = "Sanctum\\sanctum.sys"
IOC_LIST_LOCATION = "Sanctum\\ioc_list.txt"
LOG_PATH = r"logs\sanctum.log"
SANCTUM_DLL_RELATIVE_PATH = "Sanctum\\sanctum.dll"
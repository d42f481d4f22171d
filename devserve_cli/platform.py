"""Platform detection and cross-platform utilities"""

import os
import platform
import subprocess
from pathlib import Path

IS_WINDOWS = platform.system() == "Windows"
IS_MACOS = platform.system() == "Darwin"
IS_LINUX = platform.system() == "Linux"

# Environment markers set by VS Code dev containers, Codespaces and Gitpod
DEV_CONTAINER_ENV_VARS = ("REMOTE_CONTAINERS", "CODESPACES", "DEVCONTAINER", "GITPOD_WORKSPACE_ID")


def is_dev_container() -> bool:
    """Check if running inside a dev container, where servers must bind 0.0.0.0"""
    for name in DEV_CONTAINER_ENV_VARS:
        if os.environ.get(name, "").strip().lower() not in ("", "0", "false"):
            return True
    return Path("/.dockerenv").exists()


def detach_kwargs() -> dict:
    """Popen keyword arguments that detach a child from our process group"""
    if IS_WINDOWS and hasattr(subprocess, "CREATE_NEW_PROCESS_GROUP"):
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP | subprocess.DETACHED_PROCESS}
    return {"start_new_session": True}


def windows_process_exists(pid: int) -> bool:
    """Check a pid on Windows, where signal 0 is not an existence probe"""
    import ctypes

    PROCESS_QUERY_LIMITED_INFORMATION = 0x1000
    STILL_ACTIVE = 259

    kernel32 = ctypes.windll.kernel32
    handle = kernel32.OpenProcess(PROCESS_QUERY_LIMITED_INFORMATION, False, pid)
    if not handle:
        return False
    try:
        exit_code = ctypes.c_ulong()
        if not kernel32.GetExitCodeProcess(handle, ctypes.byref(exit_code)):
            return False
        return exit_code.value == STILL_ACTIVE
    finally:
        kernel32.CloseHandle(handle)

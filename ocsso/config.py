"""OpenConnect credential file."""

import os
from pathlib import Path
from typing import Union

from .errors import ConfigWriteError

APP_NAME = "ocsso-login"
CONFIG_FILENAME = "openconnect.cookie"


def default_config_path() -> Path:
    """Default credential file location in the user cache directory.

    Under sudo this is the invoking user's cache, not root's.
    """
    from platformdirs import user_cache_dir

    real_user = os.environ.get("SUDO_USER")
    if real_user and os.geteuid() == 0:
        import pwd
        try:
            home = pwd.getpwnam(real_user).pw_dir
            return Path(home) / ".cache" / APP_NAME / CONFIG_FILENAME
        except KeyError:
            pass
    return Path(user_cache_dir(APP_NAME)) / CONFIG_FILENAME


def render_oc_config(cookie: str, fingerprint: str, server: str) -> str:
    return f"cookie={cookie}\nservercert={fingerprint}\n# host={server}\n"


def write_oc_config(
        cookie: str,
        fingerprint: str,
        server: str,
        path: Union[str, Path],
) -> Path:
    """Write the session cookie and server fingerprint for openconnect.

    The file is readable and writable by the owner only.

    Args:
        cookie: VPN session cookie
        fingerprint: Server certificate hash
        server: Resolved gateway URL, recorded as a comment
        path: Output file

    Returns:
        Path written

    Raises:
        ConfigWriteError: If the file cannot be written
    """
    path = Path(path)
    content = render_oc_config(cookie, fingerprint, server)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        # O_CREAT mode does not apply to an existing file
        path.chmod(0o600)
    except OSError as e:
        raise ConfigWriteError(f"Failed to write authentication details to {path}: {e}", str(path))
    return path

#!/usr/bin/env python3
"""
ocsso-login - OpenConnect SSO login helper

Opens the gateway's single-sign-on page in a browser, waits for the login
to finish and saves the resulting session cookie and server certificate
fingerprint for openconnect.

Usage:
    ./ocsso-login.py --server https://vpn.example.com --config vpn.cookie
    ./ocsso-login.py --server vpn.example.com --log-format json --log-level debug
    ./ocsso-login.py --server vpn.example.com --login-timeout 300
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from ocsso.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())

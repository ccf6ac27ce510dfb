#!/usr/bin/env python3
"""
Checks the sync configuration before running sync.py
"""

import os
import sys

from config import load_config, unset_variables


# Variables without a usable placeholder; the sync cannot work until they are set
REQUIRED_VARS = [
    'CODER_G_ADMIN_EMAIL',
    'CODER_G_SYNC_DOMAIN',
    'CODER_G_SYNC_CODER_URL',
    'CODER_G_SYNC_SESSION_TOKEN',
]


def validate_config():
    """Validate that all required configuration is set"""
    config = load_config()
    ok = True

    missing = [var for var in unset_variables() if var in REQUIRED_VARS]
    if missing:
        print("❌ Missing required configuration variables:")
        for var in missing:
            print(f"   - {var}")
        ok = False

    if not os.path.isfile(config.credentials_file):
        print(f"❌ Google credentials file not found: {config.credentials_file}")
        ok = False

    if ok:
        print("✅ All required configuration variables are set")
    return ok


def display_config():
    """Display current configuration (masking sensitive values)"""
    config = load_config().masked()
    defaults = set(unset_variables())

    print("\n📋 Current Configuration:")
    print(f"   Google Admin Email: {config['admin_email']}")
    print(f"   Google Domain: {config['domain']}")
    print(f"   Google Customer ID: {config['customer_id']}")
    print(f"   Google Credentials File: {config['credentials_file']}")
    print(f"   Coder URL: {config['coder_url']}")
    print(f"   Coder Session Token: {config['session_token']}")
    print(f"   Request Timeout: {config['timeout']}s")
    print(f"   Dry Run Mode: {config['dry_run']}")
    print(f"   Log Level: {config['log_level']}")
    if defaults:
        print(f"\n   Using placeholder defaults for: {', '.join(sorted(defaults))}")
    print()


if __name__ == "__main__":
    print("🔍 Google Workspace to Coder Sync - Configuration Validator\n")

    if validate_config():
        display_config()
        print("✅ Configuration is valid. You can now run:")
        print("   python sync.py")
    else:
        print("\n❌ Please update your .env file with the missing configuration")
        print("   See .env.example for reference")
        sys.exit(1)

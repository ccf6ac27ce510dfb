#!/usr/bin/env python3
"""
Script to verify the Coder and Google Workspace connections independently
"""

import sys
import logging

from coder_adapter import CoderAdapter
from config import load_config
from errors import SyncError
from google_adapter import GoogleAdapter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def check_coder_connection(config):
    """Check the Coder session token and the default organization"""
    print("\n🔍 Checking Coder Connection...")

    coder = CoderAdapter(config.coder_url, config.session_token, timeout=config.timeout)
    try:
        me = coder.connect_coder()
        print(f"✅ Connected to Coder: {config.coder_url} as {me.username}")

        org = coder.default_organization()
        groups = coder.list_groups(org.id)
        print(f"✅ Found {len(groups)} groups in default organization {org.name}")

        if groups:
            print("\n   Sample groups:")
            for group in groups[:5]:
                print(f"   - {group.name}")

        return True

    except SyncError as e:
        print(f"❌ Coder connection failed: {e}")
        return False
    finally:
        coder.close()


def check_google_connection(config):
    """Check the Google service account delegation by listing users"""
    print("\n🔍 Checking Google Workspace Connection...")

    google = GoogleAdapter()
    try:
        google.connect_google(config.credentials_file, config.admin_email)
        users = google.list_users(config.customer_id)
        print(f"✅ Found {len(users)} users in Google Workspace customer {config.customer_id}")

        if users:
            sample = users[0].get("primaryEmail", "")
            groups = google.list_groups_for_user(sample)
            print(f"✅ {sample} is in {len(groups)} Google groups")
            for group in groups[:5]:
                print(f"   - {group.get('name')} ({group.get('email')})")

        return True

    except SyncError as e:
        print(f"❌ Google Workspace connection failed: {e}")
        return False


def main():
    """Run all checks"""
    print("🧪 Connection Check Script")
    print("=" * 60)

    config = load_config()
    coder_ok = check_coder_connection(config)
    google_ok = check_google_connection(config)

    print("\n" + "=" * 60)
    print("📊 Check Summary:")
    print(f"   Coder: {'✅ PASS' if coder_ok else '❌ FAIL'}")
    print(f"   Google Workspace: {'✅ PASS' if google_ok else '❌ FAIL'}")

    if coder_ok and google_ok:
        print("\n✅ All checks passed! Ready to run sync.py")
        return 0
    else:
        print("\n❌ Some checks failed. Please check your configuration.")
        return 1


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Check the connection to the SCIM directory
"""

import sys
import logging
from dotenv import load_dotenv

from errors import SyncError
from schema_mapper import group_from_scim, user_from_scim
from scim_client import ScimClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def check_scim_connection(client: ScimClient):
    """List users and groups from the directory"""
    print("\n🔍 Testing SCIM Connection...")

    try:
        users = client.list_users()
        print(f"✅ Connected to SCIM directory: {client.base_url}")
        print(f"✅ Found {len(users)} users")

        if users:
            print("\n   Sample users:")
            for resource in users[:3]:
                try:
                    user = user_from_scim(resource)
                    print(f"   - {user.id}: {user.login_name} <{user.email or 'N/A'}>")
                except SyncError as e:
                    print(f"   ⚠️  Unreadable user record: {e}")

        groups = client.list_groups()
        print(f"✅ Found {len(groups)} groups")

        if groups:
            print("\n   Sample groups:")
            for resource in groups[:3]:
                try:
                    group = group_from_scim(resource)
                    print(f"   - {group.id}: {group.display_name}")
                except SyncError as e:
                    print(f"   ⚠️  Unreadable group record: {e}")

        return True

    except SyncError as e:
        print(f"❌ SCIM connection failed: {e}")
        return False


def main():
    """Run the connection check"""
    load_dotenv()

    print("🧪 Connection Check Script")
    print("=" * 60)

    client = ScimClient()
    try:
        scim_ok = check_scim_connection(client)
    finally:
        client.close()

    print("\n" + "=" * 60)
    print("📊 Summary:")
    print(f"   SCIM: {'✅ PASS' if scim_ok else '❌ FAIL'}")

    if scim_ok:
        print("\n✅ Connection works! Ready to run sync.py")
        return 0
    else:
        print("\n❌ Connection failed. Please check your configuration.")
        return 1


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Validate the SCIM directory sync configuration
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

REQUIRED_VARS = [
    'SCIM_BASE_URL',
    'SCIM_CLIENT_ID',
    'SCIM_CLIENT_SECRET',
]

NUMERIC_VARS = {
    'SCIM_TIMEOUT_SECONDS': '30',
    'SCIM_PAGE_SIZE': '100',
    'SYNC_INTERVAL_SECONDS': '60',
}


def validate_config():
    """Validate that all required configuration is set"""
    missing = [var for var in REQUIRED_VARS if not os.getenv(var)]

    if missing:
        print("❌ Missing required configuration variables:")
        for var in missing:
            print(f"   - {var}")
        return False

    invalid = []
    for var, default in NUMERIC_VARS.items():
        value = os.getenv(var, default)
        try:
            if float(value) <= 0:
                invalid.append(f"{var}={value}")
        except ValueError:
            invalid.append(f"{var}={value}")

    if invalid:
        print("❌ Invalid numeric configuration values:")
        for item in invalid:
            print(f"   - {item}")
        return False

    print("✅ All required configuration variables are set")
    return True


def mask(value):
    if not value:
        return "(not set)"
    return value[:2] + "*" * max(len(value) - 2, 4)


def display_config():
    """Display current configuration (masking sensitive values)"""
    print("\n📋 Current Configuration:")
    print(f"   SCIM Base URL: {os.getenv('SCIM_BASE_URL')}")
    print(f"   SCIM Client ID: {os.getenv('SCIM_CLIENT_ID')}")
    print(f"   SCIM Client Secret: {mask(os.getenv('SCIM_CLIENT_SECRET'))}")
    print(f"   SCIM Timeout: {os.getenv('SCIM_TIMEOUT_SECONDS', '30')}s")
    print(f"   SCIM Page Size: {os.getenv('SCIM_PAGE_SIZE', '100')}")
    print(f"   Sync Interval: {os.getenv('SYNC_INTERVAL_SECONDS', '60')}s")
    print(f"   Dry Run Mode: {os.getenv('SYNC_DRY_RUN', 'false')}")
    print(f"   Skip Unchanged: {os.getenv('SYNC_SKIP_UNCHANGED', 'false')}")
    print()


if __name__ == "__main__":
    print("🔍 SCIM Directory Sync - Configuration Validator\n")

    if validate_config():
        display_config()
        print("✅ Configuration is valid. You can now run:")
        print("   python sync.py")
    else:
        print("\n❌ Please update your .env file with the missing configuration")
        print("   See .env.example for reference")

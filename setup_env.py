#!/usr/bin/env python3
"""
Setup script to create .env file for the tablequery service.
Run this script and follow the prompts to configure your environment.
"""

from pathlib import Path
from urllib.parse import quote


def build_database_url(user: str, password: str, host: str, port: str, database: str) -> str:
    credentials = quote(user, safe="")
    if password:
        credentials += ":" + quote(password, safe="")
    return f"mysql://{credentials}@{host}:{port}/{database}"


def render_env(values: dict) -> str:
    return f"""# Database
TABLEQUERY_DATABASE_URL={values["database_url"]}

# Table mapping
TABLEQUERY_TABLES_FILE={values["tables_file"]}

# Limits
TABLEQUERY_MAX_LIMIT={values["max_limit"]}

# Logging
TABLEQUERY_LOG_LEVEL={values["log_level"]}

# CORS
TABLEQUERY_CORS_ALLOW_ORIGINS={values["cors_origins"]}
"""


def create_env_file():
    """Interactive setup for .env file"""
    env_path = Path(".env")

    if env_path.exists():
        response = input(".env file already exists. Overwrite? (y/N): ")
        if response.lower() != 'y':
            print("Setup cancelled.")
            return

    print("=== tablequery Environment Setup ===\n")

    print("1. MYSQL CONFIGURATION")
    host = input("   Host [127.0.0.1]: ").strip() or "127.0.0.1"
    port = input("   Port [3306]: ").strip() or "3306"
    user = input("   Username: ").strip()
    password = input("   Password: ").strip()
    database = input("   Database: ").strip()

    print("\n2. TABLE MAPPING")
    tables_file = input("   Mapping file [config/tables.yaml]: ").strip() or "config/tables.yaml"

    print("\n3. OPTIONAL SETTINGS")
    max_limit = input("   Max rows per request [1000]: ").strip() or "1000"
    log_level = input("   Log level [INFO]: ").strip().upper() or "INFO"
    cors_origins = input("   Allowed Origins [http://localhost:3000]: ").strip() or "http://localhost:3000"

    env_content = render_env({
        "database_url": build_database_url(user, password, host, port, database),
        "tables_file": tables_file,
        "max_limit": max_limit,
        "log_level": log_level,
        "cors_origins": cors_origins,
    })

    with open(env_path, 'w') as f:
        f.write(env_content)

    print(f"\n✅ .env file created successfully!")
    print(f"📁 Location: {env_path.absolute()}")
    print("\n📋 Next steps:")
    print(f"   1. List your tables in {tables_file}")
    print("   2. Run the application")


if __name__ == "__main__":
    create_env_file()

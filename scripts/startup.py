#!/usr/bin/env python3
"""
Startup script for container deployment.
Runs migrations, seeds system settings and creates an admin if configured.
"""

import os
import subprocess
import sys


def run_command(cmd: list[str], description: str) -> bool:
    """Run a command and return success status."""
    print(f"\n=== {description} ===")
    try:
        subprocess.run(cmd, check=True)
        return True
    except subprocess.CalledProcessError as e:
        print(f"Warning: {description} failed with code {e.returncode}")
        return False


def main():
    print("\n" + "=" * 50)
    print("Marketplace Rules Engine Startup Script")
    print("=" * 50)

    if not run_command(["alembic", "upgrade", "head"], "Running database migrations"):
        sys.exit(1)

    run_command([sys.executable, "scripts/seed.py", "--settings-only"], "Seeding system settings")

    # Create an admin if environment variables are set
    email = os.environ.get("ADMIN_EMAIL", "").strip()
    if email:
        name = os.environ.get("ADMIN_NAME", "Platform Admin").strip()
        # Don't fail if the admin already exists
        run_command(
            [sys.executable, "scripts/create_admin.py", "--email", email, "--name", name],
            "Creating admin",
        )
    else:
        print("\nSkipping admin creation (ADMIN_EMAIL not set)")

    # Start uvicorn
    port = os.environ.get("PORT", "8000")
    print(f"\n=== Starting uvicorn on port {port} ===\n")

    os.execvp("uvicorn", [
        "uvicorn",
        "app.main:app",
        "--host", "0.0.0.0",
        "--port", port
    ])


if __name__ == "__main__":
    main()

"""Production startup script for the practice audit API.

Runs database migrations (unless RUN_MIGRATIONS=false) and then replaces
itself with uvicorn.
"""

import os
import signal
import subprocess
import sys


def run_migrations() -> bool:
    """Run database migrations before starting the app."""
    print("Running database migrations...")
    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
        )
    except subprocess.CalledProcessError as e:
        print(f"Migration failed: {e.stderr}")
        return False
    print(result.stdout)
    print("Migrations complete.")
    return True


def check_lock_backend(workers: int) -> bool:
    """In-memory locks only exclude audits within one process."""
    backend = os.getenv("LOCK_BACKEND", "memory").lower()
    if workers > 1 and backend == "memory":
        print(
            f"Refusing to start {workers} workers with LOCK_BACKEND=memory; "
            "set LOCK_BACKEND=redis so all workers share audit locks."
        )
        return False
    return True


def start_api(host: str, port: str, workers: int) -> None:
    """Start the FastAPI application with uvicorn."""
    print(f"Starting API server on {host}:{port} with {workers} worker(s)...")

    # Use exec to replace the current process
    os.execvp(
        "uvicorn",
        [
            "uvicorn",
            "api.main:app",
            "--host",
            host,
            "--port",
            port,
            "--workers",
            str(workers),
            "--proxy-headers",
            "--forwarded-allow-ips",
            "*",
        ],
    )


def signal_handler(signum: int, _frame: object) -> None:
    """Handle shutdown signals gracefully."""
    print(f"Received signal {signum}, shutting down...")
    sys.exit(0)


def main() -> None:
    """Main entry point."""
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    host = os.getenv("API_HOST", "0.0.0.0")
    port = os.getenv("PORT", os.getenv("API_PORT", "8000"))
    workers = int(os.getenv("API_WORKERS", "1"))

    if not check_lock_backend(workers):
        sys.exit(1)

    if os.getenv("RUN_MIGRATIONS", "true").lower() == "true" and not run_migrations():
        sys.exit(1)

    start_api(host, port, workers)


if __name__ == "__main__":
    main()

import os
import subprocess


def main() -> None:
    """Serve the usage dashboard API under Gunicorn with Uvicorn workers.

    The app is imported only inside the workers, so no database connections
    exist before Gunicorn forks. Set RUN_MIGRATIONS=true to apply pending
    Alembic migrations first.
    """

    host = os.getenv("HOST", "0.0.0.0")
    port = os.getenv("PORT", "8000")
    reload = os.getenv("RELOAD", "false").lower() == "true"
    workers_env = os.getenv("WORKERS")  # e.g. WORKERS=2

    if os.getenv("RUN_MIGRATIONS", "false").lower() == "true":
        subprocess.run(["alembic", "upgrade", "head"], check=True)

    cmd = [
        "gunicorn",
        "usage_dashboard.main:app",
        "-k",
        "uvicorn.workers.UvicornWorker",
        "--bind",
        f"{host}:{port}",
        "--log-level",
        os.getenv("LOG_LEVEL", "info").lower(),
    ]

    if reload:
        cmd.append("--reload")

    if workers_env and workers_env.isdigit():
        cmd.extend(["--workers", workers_env])

    # Replace the current process with Gunicorn.
    os.execvp(cmd[0], cmd)


if __name__ == "__main__":
    main()

from pathlib import Path

from dotenv import load_dotenv


def load_env() -> None:
    """Load .env and .env.local from the working directory if present.
    Variables already set in the environment win.
    """
    for name in (".env", ".env.local"):
        env_path = Path.cwd() / name
        if env_path.exists():
            load_dotenv(dotenv_path=env_path, override=False)

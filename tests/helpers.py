"""Git helpers shared by the test suite."""
import subprocess
from pathlib import Path


def run_git(repo_path: Path, *args: str) -> str:
    """Run git in ``repo_path`` and return its stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo_path,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def init_repo(repo_path: Path) -> Path:
    """Create an empty repository on branch main with a test identity."""
    repo_path.mkdir(parents=True)
    run_git(repo_path, "init", "--initial-branch=main")
    run_git(repo_path, "config", "user.email", "test@example.com")
    run_git(repo_path, "config", "user.name", "Test User")
    run_git(repo_path, "config", "commit.gpgsign", "false")
    run_git(repo_path, "config", "tag.gpgsign", "false")
    return repo_path


def make_commit(repo_path: Path, message: str, filename: str = "file.txt") -> str:
    """Append ``message`` to ``filename``, commit it and return the new SHA."""
    target = repo_path / filename
    previous = target.read_text() if target.exists() else ""
    target.write_text(previous + message + "\n")
    run_git(repo_path, "add", filename)
    run_git(repo_path, "commit", "-m", message)
    return run_git(repo_path, "rev-parse", "HEAD")


def parents_of(repo_path: Path, commit: str) -> list:
    """Parent SHAs of ``commit`` in order."""
    return run_git(repo_path, "rev-list", "--parents", "-n", "1", commit).split()[1:]

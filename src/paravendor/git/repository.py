"""Object store and commit graph access through the git executable.

Only plumbing commands are used: nothing here touches a working tree or the
index, so every operation is safe to run in a repository with local changes.
"""
import logging
import re
import selectors
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from paravendor.core.errors import GitOperationError, NetworkFetchError, StorageWriteError

logger = logging.getLogger(__name__)

# "Receiving objects:  45% (45/100)", optionally prefixed by "remote: "
_PROGRESS_RE = re.compile(r"^(?:remote: )?([A-Za-z][A-Za-z ]*?):\s+\d+% \((\d+)/(\d+)\)")
_LINE_SPLIT_RE = re.compile(rb"[\r\n]")


@dataclass(frozen=True)
class TreeEntry:
    """One row of ``git ls-tree``."""

    mode: str
    type: str
    oid: str
    name: str


@dataclass(frozen=True)
class CommitInfo:
    oid: str
    parents: Tuple[str, ...]
    message: str

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        lines = self.message.splitlines()
        return lines[0] if lines else ""


@dataclass(frozen=True)
class FetchProgress:
    """A transfer progress report parsed from ``git fetch --progress``."""

    stage: str
    current: int
    total: int


ProgressCallback = Callable[[FetchProgress], None]


def parse_progress_line(line: str) -> Optional[FetchProgress]:
    """Parse a git progress line such as ``Receiving objects:  50% (1/2)``."""
    match = _PROGRESS_RE.match(line.strip())
    if not match:
        return None
    return FetchProgress(
        stage=match.group(1),
        current=int(match.group(2)),
        total=int(match.group(3)),
    )


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").strip()


class GitRepository:
    """A local repository driven through ``git -C <path>``."""

    def __init__(
        self,
        path: Path,
        git_dir: Optional[Path] = None,
        timeout: int = 60,
        fetch_timeout: int = 600,
    ):
        self.path = Path(path)
        self.git_dir = Path(git_dir) if git_dir else None
        self.timeout = timeout
        self.fetch_timeout = fetch_timeout

    def __repr__(self) -> str:
        return f"GitRepository({str(self.path)!r})"

    def command(self, *args: str) -> List[str]:
        cmd = ["git", "-C", str(self.path)]
        if self.git_dir is not None:
            cmd += ["--git-dir", str(self.git_dir)]
        return cmd + list(args)

    def run(
        self,
        *args: str,
        input: Optional[bytes] = None,
        check: bool = True,
        timeout: Optional[int] = None,
        error_cls: type = GitOperationError,
    ) -> subprocess.CompletedProcess:
        """Run a git command and return the completed process (bytes output).

        Raises:
            error_cls: If git cannot be started, times out, or (with
                ``check``) exits non-zero.
        """
        cmd = self.command(*args)
        logger.debug(f"git: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                input=input,
                capture_output=True,
                timeout=timeout or self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise error_cls(f"git {args[0]} timed out in {self.path}")
        except OSError as e:
            raise error_cls(f"Cannot run git: {e}")

        if check and result.returncode != 0:
            raise error_cls(f"git {args[0]} failed: {_decode(result.stderr)}")
        return result

    # --- references -------------------------------------------------------

    def rev_parse(self, rev: str) -> Optional[str]:
        """Resolve ``rev`` to an object id, or None if it does not exist."""
        result = self.run("rev-parse", "--verify", "--quiet", rev, check=False)
        if result.returncode != 0:
            return None
        return _decode(result.stdout)

    def branch_tip(self, branch: str) -> Optional[str]:
        return self.rev_parse(f"refs/heads/{branch}^{{commit}}")

    def remote_branch_tip(self, remote: str, branch: str) -> Optional[str]:
        return self.rev_parse(f"refs/remotes/{remote}/{branch}^{{commit}}")

    def update_ref(self, ref: str, new: str, expected_old: str, message: str = "") -> None:
        """Move ``ref`` to ``new`` only if it currently points at ``expected_old``.

        An empty ``expected_old`` asserts that ``ref`` does not exist yet.

        Raises:
            StorageWriteError: If git refuses the update, including when the
                reference no longer matches ``expected_old``.
        """
        args = ["update-ref"]
        if message:
            args += ["-m", message]
        self.run(*args, ref, new, expected_old, error_cls=StorageWriteError)

    def current_branch(self) -> Optional[str]:
        """Short name of the checked-out branch (None when HEAD is detached)."""
        result = self.run("symbolic-ref", "--quiet", "--short", "HEAD", check=False)
        if result.returncode != 0:
            return None
        return _decode(result.stdout) or None

    def branch_remote(self, branch: str) -> Optional[str]:
        """Remote the given branch tracks, if any."""
        result = self.run("config", "--get", f"branch.{branch}.remote", check=False)
        remote = _decode(result.stdout) if result.returncode == 0 else ""
        # "." means the upstream is a local branch
        if not remote or remote == ".":
            return None
        return remote

    def remotes(self) -> List[str]:
        result = self.run("remote")
        return [line for line in _decode(result.stdout).splitlines() if line]

    # --- objects ------------------------------------------------------------

    def read_blob(self, rev: str, path: str) -> Optional[bytes]:
        """Contents of ``path`` in the tree of ``rev``, or None if absent."""
        result = self.run("cat-file", "blob", f"{rev}:{path}", check=False)
        if result.returncode != 0:
            return None
        return result.stdout

    def write_blob(self, data: bytes) -> str:
        result = self.run(
            "hash-object", "-w", "--stdin",
            input=data,
            error_cls=StorageWriteError,
        )
        return _decode(result.stdout)

    def read_tree(self, rev: str) -> List[TreeEntry]:
        """Top-level entries of the tree of ``rev``."""
        result = self.run("ls-tree", "-z", rev)
        entries = []
        for record in result.stdout.split(b"\0"):
            if not record:
                continue
            meta, name = record.split(b"\t", 1)
            mode, obj_type, oid = meta.decode().split(" ")
            entries.append(TreeEntry(mode=mode, type=obj_type, oid=oid, name=name.decode("utf-8")))
        return entries

    def write_tree(self, entries: Iterable[TreeEntry]) -> str:
        payload = b"".join(
            f"{e.mode} {e.type} {e.oid}\t{e.name}".encode("utf-8") + b"\0"
            for e in entries
        )
        result = self.run("mktree", "-z", input=payload, error_cls=StorageWriteError)
        return _decode(result.stdout)

    def commit_tree(self, tree: str, parents: Iterable[str], message: str) -> str:
        """Create a commit object without moving any reference."""
        args = ["commit-tree", tree]
        for parent in parents:
            args += ["-p", parent]
        args += ["-F", "-"]
        result = self.run(*args, input=message.encode("utf-8"), error_cls=StorageWriteError)
        return _decode(result.stdout)

    def read_commit(self, oid: str) -> CommitInfo:
        result = self.run("cat-file", "commit", oid)
        raw = result.stdout.decode("utf-8", errors="replace")
        header, _, message = raw.partition("\n\n")
        parents = tuple(
            line.split(" ", 1)[1]
            for line in header.splitlines()
            if line.startswith("parent ")
        )
        return CommitInfo(oid=oid, parents=parents, message=message)

    def object_types(self, oids: Iterable[str]) -> Dict[str, str]:
        """Map each locally present object id to its type; missing ids are omitted."""
        oids = list(oids)
        if not oids:
            return {}
        result = self.run(
            "cat-file", "--batch-check",
            input=("\n".join(oids) + "\n").encode(),
        )
        types = {}
        for line in _decode(result.stdout).splitlines():
            parts = line.split()
            if len(parts) == 3:
                types[parts[0]] = parts[1]
        return types

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True if ``ancestor`` is reachable from ``descendant`` (any parent)."""
        result = self.run("merge-base", "--is-ancestor", ancestor, descendant, check=False)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise GitOperationError(
            f"Cannot compare {ancestor[:12]} and {descendant[:12]}: {_decode(result.stderr)}"
        )

    # --- network ------------------------------------------------------------

    def ls_remote(self, url: str) -> List[Tuple[str, str]]:
        """References advertised by ``url`` as ``(ref_name, oid)`` pairs, verbatim."""
        result = self.run(
            "ls-remote", url,
            timeout=self.fetch_timeout,
            error_cls=NetworkFetchError,
        )
        refs = []
        for line in _decode(result.stdout).splitlines():
            if not line:
                continue
            oid, ref = line.split("\t", 1)
            refs.append((ref, oid))
        return refs

    def fetch(
        self,
        url: str,
        refspecs: Iterable[str],
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        """Download the objects behind ``refspecs`` without creating any reference.

        ``progress`` is called synchronously from this method for every
        progress line git prints.

        Raises:
            NetworkFetchError: If git fails or times out.
        """
        refspecs = list(refspecs)
        cmd = self.command(
            "fetch", "--no-tags", "--no-write-fetch-head", "--progress", "--stdin", url,
        )
        logger.debug(f"git: {' '.join(cmd)} ({len(refspecs)} refspecs)")
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise NetworkFetchError(f"Cannot run git: {e}")

        deadline = time.monotonic() + self.fetch_timeout
        messages: List[str] = []
        try:
            try:
                proc.stdin.write(("\n".join(refspecs) + "\n").encode("utf-8"))
                proc.stdin.close()
            except BrokenPipeError:
                # git exited before reading its input; stderr and the exit code say why
                pass

            self._read_fetch_output(proc, deadline, progress, messages)
            returncode = proc.wait(timeout=max(deadline - time.monotonic(), 0))
        except subprocess.TimeoutExpired:
            raise NetworkFetchError(
                f"git fetch from {url} timed out after {self.fetch_timeout}s"
            )
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            proc.stderr.close()

        if returncode != 0:
            detail = "; ".join(messages[-3:]) or f"exit code {returncode}"
            raise NetworkFetchError(f"git fetch from {url} failed: {detail}")

    def _read_fetch_output(
        self,
        proc: subprocess.Popen,
        deadline: float,
        progress: Optional[ProgressCallback],
        messages: List[str],
    ) -> None:
        """Consume fetch stderr until EOF.

        Raises:
            subprocess.TimeoutExpired: If ``deadline`` passes first.
        """
        pending = b""
        with selectors.DefaultSelector() as selector:
            selector.register(proc.stderr, selectors.EVENT_READ)
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0 or not selector.select(timeout=remaining):
                    raise subprocess.TimeoutExpired(proc.args, self.fetch_timeout)
                chunk = proc.stderr.read1(4096)
                if not chunk:
                    break
                pending += chunk
                *lines, pending = _LINE_SPLIT_RE.split(pending)
                for raw in lines:
                    self._handle_fetch_line(_decode(raw), progress, messages)
        if pending:
            self._handle_fetch_line(_decode(pending), progress, messages)

    @staticmethod
    def _handle_fetch_line(
        line: str,
        progress: Optional[ProgressCallback],
        messages: List[str],
    ) -> None:
        if not line:
            return
        report = parse_progress_line(line)
        if report is None:
            messages.append(line)
            logger.debug(f"fetch: {line}")
        elif progress is not None:
            progress(report)

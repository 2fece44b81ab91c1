"""
Child process supervision for installers.

ProcessRunner spawns a child process, optionally under another user/group
identity, streams its output to the log, answers interactive confirmation
prompts, and returns once both output streams are drained and the exit
status has been reaped.

Privilege handling:
    Installers often run under sudo. Some SDK tools refuse to run as root, and
    files created as root cannot be edited later by the user. The original
    user is recovered from the SUDO_UID/SUDO_GID pair once per run
    (RunAsIdentity.from_environment) and passed explicitly wherever a process
    or file must be de-elevated.

Prompt handling:
    PromptResponder watches stdout for a confirmation token (``[y/n]:`` by
    default). States move AWAITING_PROMPT -> ANSWERED -> DRAINING; output is
    only scanned while awaiting, so the answer is written and stdin closed
    exactly once.

Usage:
    runner = ProcessRunner()
    outcome = runner.run(
        ["android", "update", "sdk", "-u"],
        run_as=RunAsIdentity.from_environment(),
        responder=PromptResponder(),
    )
    if not outcome.succeeded:
        print(outcome.stderr)
"""

import codecs
import enum
import logging
import os
import re
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import IO, List, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

READ_SIZE = 4096
DEFAULT_PROMPT_PATTERN = r"\[y/n\]:"


class ProcessLaunchError(Exception):
    """Raised when a child process cannot be started."""

    pass


@dataclass(frozen=True)
class RunAsIdentity:
    """
    User and group a child process or created file should belong to.

    Attributes:
        uid: Numeric user id
        gid: Numeric group id
    """

    uid: int
    gid: int

    @classmethod
    def from_environment(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> Optional["RunAsIdentity"]:
        """
        Recover the invoking user from the sudo elevation context.

        Args:
            environ: Environment to read (defaults to os.environ)

        Returns:
            Identity from SUDO_UID/SUDO_GID, or None when not elevated via
            sudo or the values are not numeric
        """
        environ = os.environ if environ is None else environ
        uid = environ.get("SUDO_UID")
        gid = environ.get("SUDO_GID")
        if not uid or not gid:
            return None

        try:
            return cls(uid=int(uid), gid=int(gid))
        except ValueError:
            logger.warning(f"Ignoring malformed elevation context: {uid}:{gid}")
            return None


@dataclass
class ProcessOutcome:
    """Result of a supervised child process."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        """
        True only for a zero exit code with nothing written to stderr.

        Some SDK tools report errors exclusively on stderr while still
        exiting with 0.
        """
        return self.exit_code == 0 and not self.stderr


class PromptState(enum.Enum):
    """States of the prompt-answering state machine."""

    AWAITING_PROMPT = "awaiting_prompt"
    ANSWERED = "answered"
    DRAINING = "draining"


class PromptResponder:
    """
    Answers the first confirmation prompt seen in a process's output.

    Args:
        pattern: Regular expression recognizing the prompt
        answer: Text written to stdin (a line separator is appended)
    """

    def __init__(self, pattern: str = DEFAULT_PROMPT_PATTERN, answer: str = "y"):
        self.pattern = re.compile(pattern)
        self.answer = answer
        self.state = PromptState.AWAITING_PROMPT
        self._tail = ""
        # Enough carry-over to catch a token split across two reads
        self._tail_size = 32

    def feed(self, text: str) -> Optional[str]:
        """
        Scan an output chunk.

        Returns:
            The response to write when the prompt was just recognized,
            otherwise None
        """
        if self.state is not PromptState.AWAITING_PROMPT:
            return None

        window = self._tail + text
        if self.pattern.search(window):
            self.state = PromptState.ANSWERED
            self._tail = ""
            return self.answer + os.linesep

        self._tail = window[-self._tail_size :]
        return None

    def acknowledge(self) -> None:
        """Record that the answer was delivered; remaining output is drained."""
        if self.state is PromptState.ANSWERED:
            self.state = PromptState.DRAINING


def _new_decoder() -> codecs.IncrementalDecoder:
    # Keeps partial multi-byte sequences until the rest of the bytes arrive
    return codecs.getincrementaldecoder("utf-8")(errors="replace")


def _drain_stream(stream: IO[bytes], sink: List[str], label: str) -> None:
    """Read a binary stream to EOF, collecting decoded text."""
    decoder = _new_decoder()
    for chunk in iter(lambda: stream.read1(READ_SIZE), b""):
        text = decoder.decode(chunk)
        sink.append(text)
        logger.debug(f"[{label}] {text.rstrip()}")
    sink.append(decoder.decode(b"", final=True))


class ProcessRunner:
    """Spawns and supervises child processes."""

    def run(
        self,
        command: Sequence[Union[str, Path]],
        run_as: Optional[RunAsIdentity] = None,
        responder: Optional[PromptResponder] = None,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Union[str, Path]] = None,
    ) -> ProcessOutcome:
        """
        Run a command to completion.

        Args:
            command: Program and arguments
            run_as: Identity to run the child as (POSIX only)
            responder: Answers confirmation prompts seen on stdout
            env: Environment for the child (defaults to the current one)
            cwd: Working directory for the child

        Returns:
            ProcessOutcome with exit code and captured output

        Raises:
            ProcessLaunchError: If the process cannot be started
        """
        args = [str(part) for part in command]

        popen_kwargs = {
            "stdin": subprocess.PIPE if responder else subprocess.DEVNULL,
            "stdout": subprocess.PIPE,
            "stderr": subprocess.PIPE,
        }
        if env is not None:
            popen_kwargs["env"] = dict(env)
        if cwd is not None:
            popen_kwargs["cwd"] = str(cwd)
        if run_as is not None:
            popen_kwargs["user"] = run_as.uid
            popen_kwargs["group"] = run_as.gid

        identity = f" as {run_as.uid}:{run_as.gid}" if run_as else ""
        logger.debug(f"Running{identity}: {' '.join(args)}")

        try:
            process = subprocess.Popen(args, **popen_kwargs)
        except (OSError, ValueError) as e:
            raise ProcessLaunchError(f"Failed to start {args[0]}: {e}") from e

        stdout_parts: List[str] = []
        stderr_parts: List[str] = []

        # stderr is drained on its own thread so a full pipe can't stall stdout
        stderr_reader = threading.Thread(
            target=_drain_stream,
            args=(process.stderr, stderr_parts, "stderr"),
            daemon=True,
        )

        with process:
            stderr_reader.start()
            decoder = _new_decoder()
            for chunk in iter(lambda: process.stdout.read1(READ_SIZE), b""):
                text = decoder.decode(chunk)
                stdout_parts.append(text)
                logger.debug(f"[stdout] {text.rstrip()}")

                if responder is not None:
                    answer = responder.feed(text)
                    if answer is not None:
                        self._answer_prompt(process, answer)
                        responder.acknowledge()

            stdout_parts.append(decoder.decode(b"", final=True))
            stderr_reader.join()
            exit_code = process.wait()

        logger.debug(f"{args[0]} exited with code {exit_code}")
        return ProcessOutcome(
            exit_code=exit_code,
            stdout="".join(stdout_parts),
            stderr="".join(stderr_parts),
        )

    @staticmethod
    def _answer_prompt(process: subprocess.Popen, answer: str) -> None:
        """Write the answer to the child's stdin and close it."""
        logger.info("Answering confirmation prompt")
        try:
            process.stdin.write(answer.encode("utf-8"))
            process.stdin.flush()
        except BrokenPipeError:
            logger.debug("Process closed its input before the answer was written")
        finally:
            try:
                process.stdin.close()
            except BrokenPipeError:
                pass


__all__ = [
    "ProcessLaunchError",
    "RunAsIdentity",
    "ProcessOutcome",
    "PromptState",
    "PromptResponder",
    "ProcessRunner",
]

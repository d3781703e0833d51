"""Session files: one append-only record file per attempt at signing a phrase."""

import pathlib as pl
from enum import Enum, auto
from typing import BinaryIO, Optional, Set, Union

from copycat_capture.core import config

PathLike = Union[str, pl.Path]


class InvalidTransitionError(RuntimeError):
    """Raised when a recorder operation is not allowed in the current state."""


class SessionState(Enum):
    IDLE = auto()
    PHRASE_SET = auto()
    WRITING = auto()
    COMMITTED = auto()
    DISCARDED = auto()
    FAILED = auto()


def session_path(phrase: str, session_number: int, root_path: PathLike) -> pl.Path:
    """Build the file path of a session.

    Args:
        phrase: name of the phrase being signed.
        session_number: attempt number, starting at 1.
        root_path: directory holding the data of every phrase.

    Returns:
        <root_path>/<phrase>/<session_number>/<phrase>_<session_number>.<ext>
    """
    return (
        pl.Path(root_path)
        / phrase
        / str(session_number)
        / f"{phrase}_{session_number}.{config.SESSION_FILE_EXTENSION}"
    )


class SessionRecorder:
    """Owns the session file of the phrase currently being captured.

    Session numbers start at 1 for every phrase. A committed or failed session
    moves the counter past its number so the number is never handed out again;
    a discarded session restores the counter, its file being gone.
    """

    # Every path opened for writing in this process, one writer per file.
    _open_paths: Set[pl.Path] = set()

    def __init__(self, root_path: Optional[PathLike] = None):
        self.root_path = pl.Path(root_path if root_path is not None else config.DATA_ROOT)
        self.state = SessionState.IDLE
        self.phrase: Optional[str] = None
        self.session_counter = 1
        self.active_session: Optional[int] = None
        self.last_session: Optional[int] = None
        self.path: Optional[pl.Path] = None
        self._handle: Optional[BinaryIO] = None
        self._counter_before_start = 1

    @property
    def is_writing(self) -> bool:
        return self.state is SessionState.WRITING

    def set_phrase(self, name: str) -> None:
        """Select the phrase to capture and restart its session numbering at 1.

        Raises:
            InvalidTransitionError: if a session file is still open.
        """
        if self.is_writing:
            raise InvalidTransitionError(
                f"Cannot switch to phrase '{name}' while session {self.active_session} "
                f"of '{self.phrase}' is open."
            )
        self.phrase = name
        self.session_counter = 1
        self.last_session = None
        self.path = None
        self.state = SessionState.PHRASE_SET

    def start_session(
        self, session_number: Optional[int] = None, root_path: Optional[PathLike] = None
    ) -> pl.Path:
        """Open a new session file for appending.

        Args:
            session_number: number of the attempt. Defaults to the session counter,
                moved past numbers whose file already exists.
            root_path: data directory. Defaults to the recorder's root path.

        Returns:
            path of the opened session file.

        Raises:
            InvalidTransitionError: if no phrase is set, a session is already open,
                the number was already used, or its file already exists.
        """
        if self.state is SessionState.IDLE:
            raise InvalidTransitionError("Set a phrase before starting a session.")
        if self.is_writing:
            raise InvalidTransitionError(
                f"Session {self.active_session} of '{self.phrase}' is already open."
            )

        if root_path is not None:
            self.root_path = pl.Path(root_path)

        if session_number is None:
            number = self.session_counter
            # Sessions kept by an earlier run of the same phrase stay untouched.
            while session_path(self.phrase, number, self.root_path).exists():
                number += 1
        else:
            number = int(session_number)
        if number < self.session_counter:
            raise InvalidTransitionError(
                f"Session {number} of '{self.phrase}' was already used, "
                f"next free number is {self.session_counter}."
            )

        path = session_path(self.phrase, number, self.root_path)
        if path.exists():
            raise InvalidTransitionError(f"{path} already holds a recorded session.")
        key = path.resolve()
        if key in SessionRecorder._open_paths:
            raise InvalidTransitionError(f"{path} is already open by another recorder.")

        path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = open(path, "ab", buffering=config.SESSION_BUFFER_SIZE)
        SessionRecorder._open_paths.add(key)

        self._counter_before_start = self.session_counter
        self.active_session = number
        self.path = path
        self.state = SessionState.WRITING
        return path

    def append(self, text: str) -> None:
        """Append text to the open session. Does nothing unless a session is open.

        Raises:
            OSError: if the write fails.
        """
        if not self.is_writing:
            return
        self._handle.write(text.encode(config.SESSION_ENCODING))

    def commit(self) -> None:
        """Close the open session and keep its file. Does nothing if no session is open.

        Raises:
            OSError: if buffered data could not be flushed. The session is then FAILED
                and marked bad.
        """
        if not self.is_writing:
            return
        number = self.active_session
        try:
            self._close_handle()
        except OSError:
            self._finish(SessionState.FAILED)
            self.mark_bad(number)
            raise
        self._finish(SessionState.COMMITTED)

    def discard(
        self, session_number: Optional[int] = None, root_path: Optional[PathLike] = None
    ) -> None:
        """Close the open session and delete its file.

        Does nothing if no session is open, so repeated discards cannot move the
        session counter backwards.

        Args:
            session_number: expected open session, checked if given.
            root_path: expected data directory, checked if given.

        Raises:
            InvalidTransitionError: if the arguments name a session that is not open.
        """
        if not self.is_writing:
            return
        if session_number is not None and int(session_number) != self.active_session:
            raise InvalidTransitionError(
                f"Session {session_number} is not open, session {self.active_session} is."
            )
        if root_path is not None and pl.Path(root_path).resolve() != self.root_path.resolve():
            raise InvalidTransitionError(f"No session is open under {root_path}.")

        path = self.path
        try:
            self._close_handle()
        finally:
            # Already removed by someone else counts as discarded.
            path.unlink(missing_ok=True)
            self._finish(SessionState.DISCARDED)

    def mark_bad(
        self, session_number: Optional[int] = None, root_path: Optional[PathLike] = None
    ) -> pl.Path:
        """Drop an empty bad sample marker next to a session file.

        Args:
            session_number: session to mark. Defaults to the open, else the last, session.
            root_path: data directory. Defaults to the recorder's root path.

        Returns:
            path of the marker file.

        Raises:
            InvalidTransitionError: if there is no phrase or no session to mark.
        """
        if self.phrase is None:
            raise InvalidTransitionError("Set a phrase before marking a session.")
        if session_number is None:
            session_number = (
                self.active_session if self.active_session is not None else self.last_session
            )
        if session_number is None:
            raise InvalidTransitionError(f"No session of '{self.phrase}' to mark.")

        session_dir = session_path(
            self.phrase, session_number, root_path if root_path is not None else self.root_path
        ).parent
        session_dir.mkdir(parents=True, exist_ok=True)
        marker = session_dir / config.BAD_SAMPLE_FILENAME
        marker.touch()
        return marker

    def fail(self) -> None:
        """Give up on the open session after an I/O error.

        The file is kept as is and marked bad, and its number is not reused.
        """
        if not self.is_writing:
            return
        number = self.active_session
        try:
            self._close_handle()
        except OSError as err:
            print(f"Could not close {self.path}: {err}")
        self._finish(SessionState.FAILED)
        self.mark_bad(number)

    def _close_handle(self) -> None:
        handle, self._handle = self._handle, None
        SessionRecorder._open_paths.discard(self.path.resolve())
        if handle is not None:
            handle.close()

    def _finish(self, state: SessionState) -> None:
        if state is SessionState.DISCARDED:
            self.session_counter = self._counter_before_start
        else:
            self.session_counter = self.active_session + 1
        self.last_session = self.active_session
        self.active_session = None
        self.state = state

    def __repr__(self) -> str:
        return (
            f"SessionRecorder(phrase={self.phrase!r}, state={self.state.name}, "
            f"next_session={self.session_counter})"
        )

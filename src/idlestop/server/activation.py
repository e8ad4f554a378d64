"""Listener acquisition for socket activation.

Implements the receiving side of the systemd socket activation protocol:
the service manager passes listening sockets as file descriptors starting
at 3 and announces them with LISTEN_PID and LISTEN_FDS. When nothing was
passed, the service binds its own listener.
"""

from __future__ import annotations

import logging
import os
import socket
from collections.abc import MutableMapping

from idlestop.exceptions import ActivationError

logger = logging.getLogger(__name__)

# First file descriptor passed by the service manager (sd_listen_fds(3))
SD_LISTEN_FDS_START = 3

_ACTIVATION_VARS = ("LISTEN_PID", "LISTEN_FDS", "LISTEN_FDNAMES")


def listen_fds(
    unset_environment: bool = True,
    *,
    env: MutableMapping[str, str] | None = None,
    pid: int | None = None,
) -> list[socket.socket]:
    """Return the listening sockets passed by the activation authority.

    Args:
        unset_environment: Remove the LISTEN_* variables afterwards so
            child processes do not inherit them.
        env: Environment to read (defaults to os.environ).
        pid: Process id to match against LISTEN_PID (defaults to ours).

    Returns:
        Sockets in descriptor order. Empty when the process was not
        socket-activated or the variables were meant for another process.

    Raises:
        ActivationError: If LISTEN_PID/LISTEN_FDS are malformed or a
            descriptor is not a usable socket.
    """
    environ = os.environ if env is None else env
    pid = os.getpid() if pid is None else pid

    try:
        raw_pid = environ.get("LISTEN_PID")
        raw_fds = environ.get("LISTEN_FDS")
        if not raw_pid or not raw_fds:
            return []

        try:
            listen_pid = int(raw_pid)
            count = int(raw_fds)
        except ValueError as e:
            raise ActivationError(
                f"Malformed activation environment: LISTEN_PID={raw_pid!r} "
                f"LISTEN_FDS={raw_fds!r}"
            ) from e

        if listen_pid != pid:
            logger.debug(
                "Ignoring LISTEN_FDS addressed to pid %d (we are %d)", listen_pid, pid
            )
            return []
        if count < 0:
            raise ActivationError(f"Negative LISTEN_FDS: {count}")

        sockets: list[socket.socket] = []
        for fd in range(SD_LISTEN_FDS_START, SD_LISTEN_FDS_START + count):
            try:
                os.set_inheritable(fd, False)
                sockets.append(socket.socket(fileno=fd))
            except OSError as e:
                for sock in sockets:
                    sock.close()
                raise ActivationError(
                    f"File descriptor {fd} is not a usable socket: {e}"
                ) from e
        return sockets
    finally:
        if unset_environment:
            for var in _ACTIVATION_VARS:
                environ.pop(var, None)


def bind_listener(host: str, port: int, backlog: int = 128) -> socket.socket:
    """Bind a TCP listener when no socket was handed over.

    Args:
        host: Address to bind ("" for all interfaces).
        port: Port to bind (0 picks a free port).
        backlog: Listen backlog.

    Returns:
        Listening socket.

    Raises:
        ActivationError: If the address cannot be bound.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    try:
        return socket.create_server((host, port), family=family, backlog=backlog)
    except OSError as e:
        raise ActivationError(
            f"Failed to listen on {host or '*'}:{port}: {e.strerror or e}",
            bind_failed=True,
        ) from e


def select_listener(
    sockets: list[socket.socket], host: str, port: int
) -> tuple[socket.socket, bool]:
    """Pick the listener to serve on.

    Args:
        sockets: Sockets returned by listen_fds().
        host: Fallback bind address.
        port: Fallback bind port.

    Returns:
        Tuple of (listener, activated). ``activated`` is True when the
        listener came from the activation authority, which is the only
        case where idle shutdown is installed.

    Raises:
        ActivationError: If more than one socket was handed over, or the
            fallback listener cannot be bound.
    """
    if not sockets:
        return bind_listener(host, port), False

    if len(sockets) == 1:
        return sockets[0], True

    for sock in sockets:
        sock.close()
    raise ActivationError(
        f"Unexpected number of sockets passed from systemd: {len(sockets)}"
    )

"""
External asset bundler (Vite) process control

vaayu does not bundle scripts or stylesheets itself. It drives an npm
project containing Vite:

    dependencies_ensure(vite_dir)     npm install, only if node_modules is absent
    bundle_build(vite_dir, dist_dir)  npm run build
    ViteDevServer(vite_dir)           npm run dev, owned by the dev server
"""

import os
import signal
import subprocess
import threading
import time
from pathlib import Path
from typing import List, Optional, Union

from .errors import BundlerError
from .log import LOG


def npm_run(args: List[str], cwd: Union[str, Path]) -> None:
    """
    Run an npm command to completion, streaming its output

    Raises:
        BundlerError: If npm is missing or exits non-zero
    """
    LOG(f"Running npm {' '.join(args)} in {cwd}", level=2)
    try:
        subprocess.run(["npm", *args], cwd=str(cwd), check=True)
    except FileNotFoundError:
        raise BundlerError("npm not found on PATH")
    except subprocess.CalledProcessError as e:
        raise BundlerError(f"npm {' '.join(args)} failed with exit code {e.returncode}")


def dependencies_ensure(vite_dir: Union[str, Path]) -> None:
    """Install the bundler project's dependencies if node_modules is missing"""
    if (Path(vite_dir) / "node_modules").exists():
        return
    LOG("Installing Vite dependencies...", level=1)
    npm_run(["install"], vite_dir)


def bundle_build(vite_dir: Union[str, Path], dist_dir: Union[str, Path]) -> None:
    """
    Run the bundler's production build

    The Vite config decides where output goes; ``dist_dir`` is created up
    front so the manifest can be read from it afterwards.
    """
    Path(dist_dir).mkdir(parents=True, exist_ok=True)
    npm_run(["run", "build"], vite_dir)


class ViteDevServer:
    """
    Owned handle on the bundler's dev server process

    start() and stop() are idempotent and serialised by a lock. stop()
    first asks the process to exit (SIGINT, as Ctrl+C would) and kills it
    if it is still running after the grace period.
    """

    def __init__(self, vite_dir: Union[str, Path], startup_wait: float = 2.0) -> None:
        self.vite_dir = Path(vite_dir)
        self.startup_wait = startup_wait
        self.process: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def start(self) -> None:
        """
        Spawn ``npm run dev`` and give it a moment to bind its port

        Raises:
            BundlerError: If the process cannot be spawned
        """
        with self._lock:
            if self.running:
                return
            try:
                self.process = subprocess.Popen(
                    ["npm", "run", "dev"],
                    cwd=str(self.vite_dir),
                    start_new_session=(os.name == "posix"),
                )
            except OSError as e:
                raise BundlerError(f"failed to start vite dev server: {e}")
            LOG(f"Started Vite dev server (pid {self.process.pid})", level=2)

        if self.startup_wait > 0:
            time.sleep(self.startup_wait)

    def stop(self, grace: float = 5.0) -> None:
        """
        Stop the dev server: graceful signal, then forced termination

        Args:
            grace: Seconds to wait for a clean exit before killing
        """
        with self._lock:
            process, self.process = self.process, None
            if process is None or process.poll() is not None:
                return

            self.process_signal(process, signal.SIGINT if os.name == "posix" else None)
            try:
                process.wait(timeout=grace)
                LOG("Vite dev server stopped", level=2)
                return
            except subprocess.TimeoutExpired:
                LOG("Vite dev server did not exit in time, killing it", level=1, severity="WARNING")

            self.process_signal(process, signal.SIGKILL if os.name == "posix" else None, kill=True)
            process.wait()

    @staticmethod
    def process_signal(
        process: subprocess.Popen, sig: Optional[int], kill: bool = False
    ) -> None:
        """
        Signal the process group (npm spawns vite as a child) or the process

        Falls back to terminate()/kill() where process groups are unavailable.
        """
        try:
            if sig is not None:
                os.killpg(process.pid, sig)
            elif kill:
                process.kill()
            else:
                process.terminate()
        except ProcessLookupError:
            pass

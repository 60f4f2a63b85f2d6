"""ContainerRunner — spawns agent containers via async subprocess."""

from __future__ import annotations

import asyncio
import json
import shutil
import time
from typing import Callable

from gemclaw.execution.output_parser import ContainerOutputParser
from gemclaw.execution.types import ExecutionRequest, ExecutionResult
from gemclaw.groups.paths import GroupPaths
from gemclaw.infrastructure.config import CONTAINER_IMAGE, TimeoutConfig, read_env_file
from gemclaw.infrastructure.logger import logger
from gemclaw.scheduling.errors import ExecutionError

SECRET_KEYS = ["GEMINI_API_KEY", "GOOGLE_API_KEY"]

OnProcess = Callable[[asyncio.subprocess.Process, str], None]


class ContainerRunner:
    """Runs agent containers and returns the last reported output."""

    def __init__(
        self,
        runtime_bin: str | None = None,
        image: str = CONTAINER_IMAGE,
        timeout_config: TimeoutConfig | None = None,
    ) -> None:
        self._bin = runtime_bin or shutil.which("docker") or "docker"
        self._image = image
        self._timeout = timeout_config or TimeoutConfig()

    def build_args(self, request: ExecutionRequest, container_name: str) -> list[str]:
        group = request.group
        group_dir = GroupPaths.group_dir(group.folder)
        ipc_dir = GroupPaths.ipc_dir(group.folder)

        args = [
            "run", "-i", "--rm",
            "--name", container_name,
            "-v", f"{group_dir}:/workspace/group",
            "-v", f"{ipc_dir}:/workspace/ipc",
        ]
        # Secrets travel on stdin only, never on the command line
        env = dict(group.container_config.env or {}) if group.container_config else {}
        env.update({
            "GEMCLAW_GROUP_FOLDER": group.folder,
            "GEMCLAW_IS_MAIN": "1" if request.is_main else "0",
            "GEMCLAW_CHAT_JID": request.chat_jid,
        })
        for key, value in env.items():
            args.extend(["-e", f"{key}={value}"])
        args.append(self._image)
        return args

    async def run(self, request: ExecutionRequest, on_process: OnProcess | None = None) -> ExecutionResult:
        """Run a container and return the final output."""
        group = request.group
        container_name = f"gemclaw-{group.folder}-{int(time.time())}"
        timeout = self._timeout.for_group(group)

        GroupPaths.group_dir(group.folder).mkdir(parents=True, exist_ok=True)
        GroupPaths.ipc_dir(group.folder).mkdir(parents=True, exist_ok=True)

        secrets = read_env_file(SECRET_KEYS)
        container_args = self.build_args(request, container_name)

        logger.info("Starting container", name=container_name, group=group.name, image=self._image)

        try:
            proc = await asyncio.create_subprocess_exec(
                self._bin, *container_args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as err:
            raise ExecutionError(f"Container runtime unavailable: {err}", {"runtime": self._bin}) from err

        if on_process:
            on_process(proc, container_name)

        # Write input JSON to stdin
        stdin_data = json.dumps({
            "prompt": request.prompt,
            "sessionId": request.session_id,
            "groupFolder": group.folder,
            "chatJid": request.chat_jid,
            "isMain": request.is_main,
            "isScheduledTask": request.is_scheduled_task,
            "systemPrompt": request.system_prompt,
            "enableWebSearch": request.enable_web_search,
            "secrets": secrets,
        }).encode()

        assert proc.stdin is not None
        proc.stdin.write(stdin_data)
        proc.stdin.write_eof()

        parser = ContainerOutputParser()
        last_output = ExecutionResult(status="ok", result=None)

        async def read_stdout() -> None:
            nonlocal last_output
            assert proc.stdout is not None
            async for raw_line in proc.stdout:
                output = parser.feed(raw_line.decode(errors="replace"))
                if output:
                    last_output = output

        async def read_stderr() -> None:
            assert proc.stderr is not None
            async for raw_line in proc.stderr:
                line = raw_line.decode(errors="replace").rstrip()
                if line:
                    logger.debug("Container stderr", name=container_name, line=line)

        hard_timeout_s = timeout.get_hard_timeout() / 1000

        try:
            await asyncio.wait_for(
                asyncio.gather(read_stdout(), read_stderr(), proc.wait()),
                timeout=hard_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("Container hard timeout, killing", name=container_name, timeout_s=hard_timeout_s)
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            last_output = ExecutionResult.failure("Container timeout")

        return_code = proc.returncode
        if return_code and last_output.status != "error" and last_output.result is None:
            logger.warning("Container exited with error", name=container_name, code=return_code)
            last_output = ExecutionResult.failure(f"Container exited with code {return_code}")

        logger.info("Container finished", name=container_name, status=last_output.status)
        return last_output

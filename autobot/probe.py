"""Runs the external Azure OpenAI capability probe and parses its report."""

import asyncio
import json
import logging
import os
from typing import Any, Mapping, Optional, Sequence

from .models import CapabilitiesResult, ChatConfig, ProbeResult

logger = logging.getLogger(__name__)

DEFAULT_PROBE_COMMAND = ("node", "scripts/azure-capabilities.mjs")
PROBE_STATUSES = ("supported", "unsupported", "error")


class CapabilitiesProbe:
    """Invokes the probe process with the endpoint, api version and deployment."""

    def __init__(self, command: Sequence[str] = DEFAULT_PROBE_COMMAND, timeout: float = 120.0):
        self.command = tuple(command)
        self.timeout = timeout

    async def run(self, config: Optional[ChatConfig]) -> CapabilitiesResult:
        if config is None:
            return CapabilitiesResult(ok=False, azure=False, error="Configuration not found")

        if not config.looks_like_azure:
            return CapabilitiesResult(
                ok=False,
                azure=False,
                error="Capabilities probe is only available for Azure OpenAI endpoints",
            )

        if not config.azure_api_version or not config.azure_deployment:
            return CapabilitiesResult(
                ok=False,
                azure=True,
                endpoint=config.api_endpoint,
                error="Azure API version and deployment are required to run the probe",
            )

        args = [
            *self.command,
            "--json",
            "--endpoint",
            config.api_endpoint,
            "--api-version",
            config.azure_api_version,
            "--deployment",
            config.azure_deployment,
        ]
        env = {**os.environ, "AZURE_OPENAI_API_KEY": config.api_key}

        def failure(message: str) -> CapabilitiesResult:
            return CapabilitiesResult(
                ok=False,
                azure=True,
                endpoint=config.api_endpoint,
                deployment=config.azure_deployment,
                api_version=config.azure_api_version,
                error=message,
            )

        logger.info("Running capabilities probe for deployment %s", config.azure_deployment)
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            return failure(f"Failed to start probe: {exc}")

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return failure(f"Probe timed out after {self.timeout:g}s")

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            return failure(message or f"Probe exited with code {process.returncode}")

        try:
            parsed = json.loads(stdout.decode("utf-8", errors="replace").strip())
        except json.JSONDecodeError as exc:
            return failure(f"Failed to parse probe output: {exc}")
        if not isinstance(parsed, Mapping):
            return failure("Failed to parse probe output: expected a JSON object")

        return CapabilitiesResult(
            ok=True,
            azure=True,
            results=[_parse_result(item) for item in parsed.get("results") or [] if isinstance(item, Mapping)],
            endpoint=parsed.get("endpoint") or config.api_endpoint,
            deployment=parsed.get("deployment") or config.azure_deployment,
            api_version=parsed.get("apiVersion") or config.azure_api_version,
        )


def _parse_result(raw: Mapping[str, Any]) -> ProbeResult:
    status = raw.get("status")
    return ProbeResult(
        name=str(raw.get("name", "")),
        status=status if status in PROBE_STATUSES else "error",
        details=str(raw.get("details") or ""),
    )

import sys

import pytest

from autobot.models import ChatConfig
from autobot.probe import CapabilitiesProbe

AZURE_CONFIG = ChatConfig(
    api_endpoint="https://demo.openai.azure.com",
    api_key="azure-key",
    model="gpt-4o",
    azure_api_version="2024-10-21",
    azure_deployment="gpt-4o-demo",
)

REPORTING_SCRIPT = """
import json, os, sys
args = sys.argv[1:]
print(json.dumps({
    "endpoint": args[args.index("--endpoint") + 1],
    "deployment": args[args.index("--deployment") + 1],
    "apiVersion": args[args.index("--api-version") + 1],
    "results": [
        {"name": "tools", "status": "supported", "details": os.environ["AZURE_OPENAI_API_KEY"]},
        {"name": "streaming", "status": "weird"},
    ],
}))
"""


def _python_probe(script):
    return CapabilitiesProbe(command=(sys.executable, "-c", script), timeout=30)


@pytest.mark.asyncio
async def test_probe_parses_report_and_passes_key_in_env():
    result = await _python_probe(REPORTING_SCRIPT).run(AZURE_CONFIG)

    assert result.ok is True
    assert result.azure is True
    assert result.deployment == "gpt-4o-demo"
    assert result.api_version == "2024-10-21"
    assert result.results[0].status == "supported"
    assert result.results[0].details == "azure-key"
    assert result.results[1].status == "error"
    assert result.to_dict()["apiVersion"] == "2024-10-21"


@pytest.mark.asyncio
async def test_probe_reports_non_zero_exit():
    script = "import sys; sys.stderr.write('Missing required env vars'); sys.exit(1)"

    result = await _python_probe(script).run(AZURE_CONFIG)

    assert result.ok is False
    assert result.error == "Missing required env vars"


@pytest.mark.asyncio
async def test_probe_reports_unparsable_output():
    result = await _python_probe("print('not json')").run(AZURE_CONFIG)

    assert result.ok is False
    assert result.error.startswith("Failed to parse probe output")


@pytest.mark.asyncio
async def test_probe_reports_missing_executable():
    probe = CapabilitiesProbe(command=("/nonexistent/autobot-probe",))

    result = await probe.run(AZURE_CONFIG)

    assert result.ok is False
    assert result.error.startswith("Failed to start probe")


@pytest.mark.asyncio
async def test_probe_requires_azure_settings():
    probe = _python_probe(REPORTING_SCRIPT)

    missing = await probe.run(None)
    not_azure = await probe.run(ChatConfig(api_endpoint="https://openrouter.ai/api/v1", api_key="k"))
    incomplete = await probe.run(ChatConfig(api_endpoint="https://demo.openai.azure.com", api_key="k"))

    assert missing.error == "Configuration not found"
    assert not_azure.azure is False
    assert incomplete.azure is True
    assert "deployment" in incomplete.error

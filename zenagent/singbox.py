"""Calls into the local sing-box: restart, key generation, traffic counters."""
import logging
import secrets
import shlex
import subprocess
from typing import Sequence

import httpx

from zenagent.config import AgentSettings

logger = logging.getLogger(__name__)


class EngineError(RuntimeError):
    """A sing-box command or API call failed; message carries the diagnostic."""


def sh(cmd: Sequence[str], timeout: float = 10) -> tuple[int, str, str]:
    """Run a command without a shell and return (code, stdout, stderr)."""
    p = subprocess.run(
        list(cmd),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        timeout=timeout,
    )
    return p.returncode, (p.stdout or "").strip(), (p.stderr or "").strip()


def _run(cmd: Sequence[str], timeout: float) -> str:
    try:
        code, out, err = sh(cmd, timeout=timeout)
    except FileNotFoundError as e:
        raise EngineError(f"{cmd[0]}: command not found") from e
    except subprocess.TimeoutExpired as e:
        raise EngineError(f"{shlex.join(cmd)} timed out after {timeout}s") from e
    if code != 0:
        raise EngineError(f"{shlex.join(cmd)} exited with {code}: {err or out}")
    return out


def restart(settings: AgentSettings) -> None:
    """Run the configured restart command. Does not wait for the engine to come up."""
    cmd = shlex.split(settings.restart_command)
    if not cmd:
        raise EngineError("restart command is empty")
    _run(cmd, timeout=settings.restart_timeout)
    logger.info("sing-box restarted via %r", settings.restart_command)


def parse_keypair(output: str) -> tuple[str, str]:
    private_key = public_key = ""
    for line in output.splitlines():
        line = line.strip()
        if line.startswith("PrivateKey:"):
            private_key = line.removeprefix("PrivateKey:").strip()
        elif line.startswith("PublicKey:"):
            public_key = line.removeprefix("PublicKey:").strip()
    if not private_key or not public_key:
        raise EngineError(f"unexpected reality-keypair output: {output!r}")
    return private_key, public_key


def generate_reality_keys(settings: AgentSettings) -> dict[str, str]:
    out = _run([settings.singbox_bin, "generate", "reality-keypair"], timeout=10)
    private_key, public_key = parse_keypair(out)
    try:
        short_id = _run([settings.singbox_bin, "generate", "rand", "--hex", "8"], timeout=10)
    except EngineError as e:
        logger.warning("Short id generation via sing-box failed, using random hex: %s", e)
        short_id = ""
    return {
        "private_key": private_key,
        "public_key": public_key,
        "short_id": short_id or secrets.token_hex(8),
    }


def _query_counters(settings: AgentSettings, direction: str) -> dict[str, int]:
    url = f"{settings.singbox_api.rstrip('/')}/stats/query"
    params = {"pattern": f"user>>>.*>>>traffic>>>{direction}", "reset": "false"}
    try:
        with httpx.Client(timeout=settings.stats_timeout) as client:
            r = client.get(url, params=params)
            r.raise_for_status()
            data = r.json()
    except (httpx.HTTPError, ValueError) as e:
        raise EngineError(f"stats query ({direction}) failed: {e}") from e

    counters: dict[str, int] = {}
    for stat in data.get("stat") or []:
        # user>>>{name}>>>traffic>>>{direction}
        parts = str(stat.get("name", "")).split(">>>")
        if len(parts) >= 2 and parts[0] == "user" and parts[1]:
            counters[parts[1]] = int(stat.get("value") or 0)
    return counters


def user_traffic(settings: AgentSettings) -> list[dict[str, int | str]]:
    uplink = _query_counters(settings, "uplink")
    downlink = _query_counters(settings, "downlink")
    return [
        {"name": name, "upload": uplink.get(name, 0), "download": downlink.get(name, 0)}
        for name in sorted(uplink.keys() | downlink.keys())
    ]

# ==============================
# CLI Entrypoint
# ==============================
"""
CLI for toolkit/.

Supported commands:
  toolkit list-tools [--filter 'hris_*']
  toolkit search --query "list employees" [--limit 5] [--min-score 0.3]
  toolkit execute --tool hris_list_employees --params '{"limit": 10}' --dry-run
  toolkit execute --tool hris_get_employee --params-file params.json
  toolkit chain --steps '[{"toolName": "hris_list_employees", "parameters": {}}]'
  toolkit chain --steps-file chain.json --account-id acc_123

Every command accepts --catalog to load tools from a catalog file instead of
the configured toolset.catalog_file. Output is redacted JSON on stdout.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, List, Optional

from toolkit.config.loader import load_settings
from toolkit.config.schema import Settings
from toolkit.governance.security import SecurityRedactor
from toolkit.knowledge.discovery import DiscoveryIndex
from toolkit.logging.logger import bootstrap_logger
from toolkit.orchestrator.chain import ChainOrchestrator
from toolkit.tools.collection import Tools
from toolkit.toolsets.catalog import CatalogToolSet
from toolkit.utils.errors import ToolkitError


def _json_load(text: str, *, what: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON {what}: {exc}") from exc


def _load_json_arg(inline: Optional[str], path: Optional[str], *, what: str) -> Any:
    if inline and path:
        raise SystemExit(f"Provide only one of --{what} or --{what}-file.")
    if path:
        return _json_load(Path(path).read_text(encoding="utf-8"), what=what)
    if inline:
        return _json_load(inline, what=what)
    return None


def _print_json(obj: Any, redactor: SecurityRedactor) -> None:
    print(json.dumps(redactor.redact_any(obj), indent=2, ensure_ascii=False, default=str))


def _load_tools(settings: Settings, catalog: Optional[str]) -> Tools:
    if catalog:
        toolset_cfg = settings.toolset.model_copy(update={"catalog_file": catalog})
        settings = settings.model_copy(update={"toolset": toolset_cfg})
    return CatalogToolSet.from_settings(settings).get_tools("*")


def cmd_list_tools(tools: Tools, redactor: SecurityRedactor, *, pattern: Optional[str]) -> int:
    selected = tools.filter_by_patterns([pattern]) if pattern else tools
    _print_json(
        {"tools": [{"name": t.name, "description": t.description} for t in selected], "total": len(selected)},
        redactor,
    )
    return 0


def cmd_search(
    index: DiscoveryIndex,
    redactor: SecurityRedactor,
    *,
    query: str,
    limit: Optional[int],
    min_score: Optional[float],
) -> int:
    hits = index.search(query, limit=limit, min_score=min_score)
    _print_json({"tools": [hit.model_dump() for hit in hits], "total": len(hits), "query": query}, redactor)
    return 0


def cmd_execute(
    tools: Tools,
    redactor: SecurityRedactor,
    *,
    tool_name: str,
    params: Any,
    dry_run: bool,
) -> int:
    tool = tools.get_tool(tool_name)
    if tool is None:
        raise SystemExit(f"Unknown tool '{tool_name}'. Run `list-tools` to inspect available tools.")
    if params is not None and not isinstance(params, dict):
        raise SystemExit("JSON params must be an object.")
    try:
        result = tool.execute(params or {}, dry_run=dry_run)
    except ToolkitError as exc:
        raise SystemExit(str(exc)) from exc
    _print_json(result, redactor)
    return 0


def cmd_chain(
    orchestrator: ChainOrchestrator,
    redactor: SecurityRedactor,
    *,
    steps: Any,
    account_id: Optional[str],
    dry_run: bool,
) -> int:
    if isinstance(steps, dict):
        account_id = account_id or steps.get("accountId")
        steps = steps.get("steps")
    if not isinstance(steps, list):
        raise SystemExit("JSON steps must be an array (or an object with a 'steps' array).")
    try:
        result = orchestrator.run(steps, account_id=account_id, dry_run=dry_run)
    except ToolkitError as exc:
        raise SystemExit(str(exc)) from exc
    _print_json(result.to_dict(), redactor)
    return 0 if result.success else 1


def main(argv: Optional[List[str]] = None, *, tools: Optional[Tools] = None) -> int:
    ap = argparse.ArgumentParser(prog="toolkit")
    ap.add_argument("--catalog", help="Path to a YAML/JSON tool catalog", default=None)
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_list = sub.add_parser("list-tools")
    ap_list.add_argument("--filter", help="Glob pattern, e.g. 'hris_*' or '!*_delete_*'", default=None)

    ap_search = sub.add_parser("search")
    ap_search.add_argument("--query", required=True)
    ap_search.add_argument("--limit", type=int, default=None)
    ap_search.add_argument("--min-score", type=float, default=None)

    ap_exec = sub.add_parser("execute")
    ap_exec.add_argument("--tool", required=True)
    ap_exec.add_argument("--params", help="JSON object string", default=None)
    ap_exec.add_argument("--params-file", help="Path to JSON file with params", default=None)
    ap_exec.add_argument("--dry-run", action="store_true", help="Print the request instead of sending it")

    ap_chain = sub.add_parser("chain")
    ap_chain.add_argument("--steps", help="JSON array of steps", default=None)
    ap_chain.add_argument("--steps-file", help="Path to JSON file with steps", default=None)
    ap_chain.add_argument("--account-id", help="Account id sent with every step", default=None)
    ap_chain.add_argument("--dry-run", action="store_true")

    args = ap.parse_args(argv)

    settings, _ = load_settings()
    bootstrap_logger(settings)
    redactor = SecurityRedactor.from_settings(settings)
    if tools is None:
        try:
            tools = _load_tools(settings, args.catalog)
        except ToolkitError as exc:
            raise SystemExit(str(exc)) from exc

    if args.cmd == "list-tools":
        return cmd_list_tools(tools, redactor, pattern=args.filter)
    if args.cmd == "search":
        index = DiscoveryIndex.from_config(tools, settings.discovery)
        return cmd_search(index, redactor, query=args.query, limit=args.limit, min_score=args.min_score)
    if args.cmd == "execute":
        params = _load_json_arg(args.params, args.params_file, what="params")
        return cmd_execute(tools, redactor, tool_name=args.tool, params=params, dry_run=args.dry_run)
    if args.cmd == "chain":
        steps = _load_json_arg(args.steps, args.steps_file, what="steps")
        if steps is None:
            raise SystemExit("Provide --steps or --steps-file.")
        return cmd_chain(
            ChainOrchestrator(tools),
            redactor,
            steps=steps,
            account_id=args.account_id,
            dry_run=args.dry_run,
        )

    raise SystemExit(f"Unknown command: {args.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())

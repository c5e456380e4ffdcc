# ==============================
# Remote ToolSet
# ==============================
"""
Tools fetched from a remote catalog and executed through the RPC relay.

Flow (fetch_tools):
- One catalog fetch per account id (x-account-id header), run on a thread pool
  and flattened in account order; without account ids, a single fetch.
- Names starting with "unified_" mean a misconfigured account -> ToolSetConfigError.
- Every entry becomes an rpc Tool (execution metadata hidden) sharing one
  executor bound to the RpcClient.
- Optional provider/action filters, then the feedback tool is appended.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import requests

from toolkit.config.schema import DEFAULT_BASE_URL, Settings
from toolkit.contracts.rpc_schema import CatalogEntry
from toolkit.contracts.tool_schema import RpcExecuteConfig
from toolkit.logging.tracing import Tracer
from toolkit.tools.base import ACCOUNT_ID_HEADER, Tool
from toolkit.tools.collection import Tools
from toolkit.tools.executor import ToolExecutor
from toolkit.tools.feedback import create_feedback_tool
from toolkit.tools.request_builder import DEFAULT_USER_AGENT
from toolkit.toolsets.base import AuthArg, ToolSet, check_api_key, filter_tools
from toolkit.toolsets.catalog_client import CatalogClient
from toolkit.toolsets.rpc_client import RpcClient
from toolkit.utils.errors import ToolSetConfigError

UNIFIED_API_PREFIX = "unified_"
MAX_FETCH_WORKERS = 8

CatalogFetcher = Callable[[Mapping[str, str]], List[CatalogEntry]]


class RemoteToolSet(ToolSet):
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        account_id: Optional[str] = None,
        account_ids: Optional[Sequence[str]] = None,
        headers: Optional[Mapping[str, str]] = None,
        auth: Optional[AuthArg] = None,
        strict: bool = False,
        session: Optional[requests.Session] = None,
        rpc_client: Optional[RpcClient] = None,
        catalog_fetcher: Optional[CatalogFetcher] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        tracer: Optional[Tracer] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        log = logger or logging.getLogger(__name__)
        check_api_key(api_key, strict=strict, logger=log)
        super().__init__(
            base_url=base_url or DEFAULT_BASE_URL,
            auth=auth if auth is not None else {"type": "basic", "username": api_key or "", "password": ""},
            headers=headers,
            account_id=account_id,
            account_ids=account_ids,
            logger=log,
        )
        self.api_key = api_key
        self.session = session
        self.user_agent = user_agent
        self.tracer = tracer
        self._rpc_client = rpc_client
        self._catalog_fetcher = catalog_fetcher or self._fetch_catalog

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "RemoteToolSet":
        return cls(
            api_key=settings.secrets.api_key,
            base_url=settings.toolset.base_url,
            account_id=settings.toolset.account_id,
            account_ids=settings.toolset.account_ids,
            headers=settings.toolset.headers,
            strict=settings.toolset.strict,
            user_agent=settings.http.user_agent,
            **kwargs,
        )

    # ==============================
    # Clients
    # ==============================
    def rpc_client(self) -> RpcClient:
        if self._rpc_client is not None:
            return self._rpc_client

        username: Optional[str] = self.api_key
        password = ""
        if self.auth is not None:
            if self.auth.type == "basic":
                username = self.auth.username or username
                password = self.auth.password or ""
            elif self.auth.type == "bearer":
                username = self.auth.token or username
        if not username:
            raise ToolSetConfigError(
                "An API key is required to create an actions client. "
                "Provide rpc_client, configure authentication credentials, or set STACKONE_API_KEY."
            )
        self._rpc_client = RpcClient(
            api_key=username,
            password=password,
            base_url=self.base_url,
            session=self.session,
            user_agent=self.user_agent,
        )
        return self._rpc_client

    def _fetch_catalog(self, headers: Mapping[str, str]) -> List[CatalogEntry]:
        client = CatalogClient(
            base_url=self.base_url or DEFAULT_BASE_URL,
            headers=headers,
            user_agent=self.user_agent,
        )
        return client.list_tools()

    # ==============================
    # Fetch
    # ==============================
    def fetch_tools(
        self,
        *,
        account_ids: Optional[Sequence[str]] = None,
        providers: Optional[Sequence[str]] = None,
        actions: Optional[Sequence[str]] = None,
    ) -> Tools:
        effective = list(account_ids) if account_ids else list(self.account_ids)
        executor = ToolExecutor(
            session=self.session,
            rpc_transport=self.rpc_client(),
            user_agent=self.user_agent,
            tracer=self.tracer,
        )

        if effective:
            header_sets = [{**self.headers, ACCOUNT_ID_HEADER: account} for account in effective]
            workers = min(MAX_FETCH_WORKERS, len(header_sets))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                batches = list(pool.map(self._catalog_fetcher, header_sets))
        else:
            header_sets = [dict(self.headers)]
            batches = [self._catalog_fetcher(header_sets[0])]

        tools: List[Tool] = []
        for headers, entries in zip(header_sets, batches):
            for entry in entries:
                tools.append(self._rpc_tool(entry, headers, executor))
        self.tools = tools
        self.logger.info("fetched %d remote tools for %d account(s)", len(tools), len(effective) or 1)

        filtered = filter_tools(Tools(tools), providers=providers, actions=actions)
        feedback = create_feedback_tool(
            api_key=self.api_key,
            base_url=self.base_url,
            session=self.session,
            user_agent=self.user_agent,
        )
        return filtered.with_tools([feedback])

    def _rpc_tool(self, entry: CatalogEntry, headers: Dict[str, str], executor: ToolExecutor) -> Tool:
        if entry.name.startswith(UNIFIED_API_PREFIX):
            raise ToolSetConfigError(
                f'Received unified API tool "{entry.name}". This indicates the account is not properly configured. '
                "Unified API tools require versioned connectors. Please check the account's integration setup."
            )
        schema = dict(entry.input_schema)
        schema.setdefault("type", "object")
        schema["properties"] = dict(schema.get("properties") or {})
        return Tool(
            entry.name,
            entry.description,
            schema,
            RpcExecuteConfig(url=f"{self.base_url}/actions/rpc"),
            headers,
            expose_execution_metadata=False,
            executor=executor,
        )

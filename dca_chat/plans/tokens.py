"""Token registry for the DCA network, loaded from ``tokens.json``."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional


class TokenRegistry:
    """Expose token metadata so extraction and validation share one vocabulary."""

    _REGISTRY_PATH: Path = Path(__file__).with_name("tokens.json")
    _TOKENS: Dict[str, Dict[str, Any]] = {}
    _ALIASES: Dict[str, str] = {}
    _NETWORK: str = ""
    _LOADED: bool = False

    # ---------- Registry management ----------
    @classmethod
    def reload(cls) -> None:
        data = cls._load_registry()
        cls._rebuild(data)

    @classmethod
    def _ensure_loaded(cls) -> None:
        if not cls._LOADED:
            cls.reload()

    @classmethod
    def _load_registry(cls) -> Dict[str, Any]:
        try:
            raw = cls._REGISTRY_PATH.read_text()
        except FileNotFoundError as exc:
            raise RuntimeError(f"Token registry not found: {cls._REGISTRY_PATH}") from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"Invalid JSON token registry: {exc}") from exc
        if not isinstance(data, dict):
            raise RuntimeError("Token registry must be a JSON object with 'tokens'.")
        return data

    @classmethod
    def _rebuild(cls, data: Dict[str, Any]) -> None:
        tokens: Dict[str, Dict[str, Any]] = {}
        aliases: Dict[str, str] = {}

        for token in data.get("tokens", []):
            if not isinstance(token, dict):
                continue
            symbol = (token.get("symbol") or "").strip().upper()
            if not symbol:
                continue
            clean = dict(token)
            clean["symbol"] = symbol
            tokens[symbol] = clean
            aliases[symbol.lower()] = symbol
            for alias in token.get("aliases", []):
                alias_key = (alias or "").strip().lower()
                if alias_key:
                    aliases.setdefault(alias_key, symbol)

        cls._TOKENS = tokens
        cls._ALIASES = aliases
        cls._NETWORK = (data.get("network") or "").strip().lower()
        cls._LOADED = True

    # ---------- Public helpers ----------
    @classmethod
    def network(cls) -> str:
        cls._ensure_loaded()
        return cls._NETWORK

    @classmethod
    def symbols(cls) -> List[str]:
        cls._ensure_loaded()
        return list(cls._TOKENS)

    @classmethod
    def vocabulary(cls) -> List[str]:
        """Every symbol and alias, longest first so regex alternation prefers WETH over ETH."""
        cls._ensure_loaded()
        return sorted(cls._ALIASES, key=len, reverse=True)

    @classmethod
    def resolve(cls, text: Optional[str]) -> Optional[str]:
        """Map a symbol or alias to its canonical symbol, or None when unknown."""
        if not text:
            return None
        cls._ensure_loaded()
        return cls._ALIASES.get(text.strip().lower())

    @classmethod
    def is_available(cls, symbol: Optional[str]) -> bool:
        if not symbol:
            return False
        cls._ensure_loaded()
        return symbol.strip().upper() in cls._TOKENS

    @classmethod
    def get(cls, symbol: str) -> Optional[Dict[str, Any]]:
        cls._ensure_loaded()
        entry = cls._TOKENS.get((symbol or "").strip().upper())
        return dict(entry) if entry else None

    @classmethod
    def address(cls, symbol: str) -> Optional[str]:
        entry = cls.get(symbol)
        return entry.get("address") if entry else None

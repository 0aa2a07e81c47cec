import copy
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


class ConfigMerger:
    @staticmethod
    def merge(
        base: Dict[str, Any],
        override: Dict[str, Any],
        context_description: str = "ConfigMerge",
        strict_keys: bool = False,
    ) -> Dict[str, Any]:
        """
        Merges an 'override' dictionary into a 'base' dictionary.
        - Dictionaries are merged recursively.
        - Other types in override replace values in base.
        - If strict_keys is True, override keys not in base raise ValueError.
        """
        if not isinstance(base, dict):
            logger.error(
                f"[{context_description}] Base for merge is not a dictionary (type: {type(base)}). "
                f"Returning override if dict, else empty."
            )
            return copy.deepcopy(override) if isinstance(override, dict) else {}

        if not isinstance(override, dict):
            logger.warning(
                f"[{context_description}] Override for merge is not a dictionary (type: {type(override)}). "
                f"Returning base."
            )
            return copy.deepcopy(base)

        merged = copy.deepcopy(base)
        logger.debug(
            f"[{context_description}] Starting merge. Base keys: {list(base.keys())}, Override keys: {list(override.keys())}"
        )

        for key, override_value in override.items():
            base_value = merged.get(key)

            if key not in merged:
                if strict_keys:
                    raise ValueError(
                        f"[{context_description}] Strict mode: Key '{key}' in override not found in base."
                    )
                merged[key] = copy.deepcopy(override_value)
                logger.debug(f"[{context_description}] Added new key '{key}'")
            elif isinstance(base_value, dict) and isinstance(override_value, dict):
                merged[key] = ConfigMerger.merge(
                    base_value,
                    override_value,
                    context_description=f"{context_description} -> {key}",
                    strict_keys=strict_keys,
                )
            elif base_value != override_value:
                merged[key] = copy.deepcopy(override_value)
                logger.debug(
                    f"[{context_description}] Overrode key '{key}': {str(base_value)[:80]} -> {str(override_value)[:80]}"
                )

        return merged

"""Configuration manager for the yearly tax tables.

Lists and clones tax years, and edits canton multipliers and commune
coefficients in place, archiving the previous file on every save.
"""

from __future__ import annotations
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import structlog
from ruamel.yaml import YAML

from ..engine.models import CantonTaxRule, CommuneTaxRule, SwitzerlandConfig

log = structlog.get_logger(__name__)

CONFIG_FILES = ("switzerland.yaml", "prevoyance.yaml")
TAX_FILE = "switzerland.yaml"


def _yaml_writer() -> YAML:
    writer = YAML()
    writer.preserve_quotes = True
    writer.width = 150
    writer.indent(mapping=2, sequence=4, offset=2)
    writer.default_flow_style = None
    return writer


class ConfigManager:
    """Manager for the ``<root>/<year>/`` configuration directories."""

    def __init__(self, config_root: Path):
        self.config_root = config_root

    def _year_dir(self, year: int) -> Path:
        return self.config_root / str(year)

    def get_available_years(self) -> List[int]:
        if not self.config_root.exists():
            return []
        return sorted(int(p.name) for p in self.config_root.iterdir() if p.is_dir() and p.name.isdigit())

    def year_exists(self, year: int) -> bool:
        """A year exists when both its tax and pension files are present."""
        year_dir = self._year_dir(year)
        return all((year_dir / name).exists() for name in CONFIG_FILES)

    def create_year(self, source_year: int, target_year: int, overwrite: bool = False) -> Dict[str, Any]:
        """Clone every file of ``source_year`` into a new ``target_year`` directory.

        Raises ValueError when the source is missing, or when the target
        already exists and ``overwrite`` is not set.
        """
        source_dir = self._year_dir(source_year)
        target_dir = self._year_dir(target_year)

        if not source_dir.exists():
            raise ValueError(f"Source year {source_year} does not exist")
        if target_dir.exists():
            if not overwrite:
                raise ValueError(f"Target year {target_year} already exists. Use overwrite=True to replace.")
            shutil.rmtree(target_dir)

        # archives belong to the source year
        shutil.copytree(source_dir, target_dir, ignore=shutil.ignore_patterns("_archive"))
        log.info("year_created", source=source_year, target=target_year)

        return {
            "source_year": source_year,
            "target_year": target_year,
            "success": True,
            "message": f"Created {target_year} tables from {source_year}",
        }

    def load_config(self, year: int) -> SwitzerlandConfig:
        from ..io.loader import load_switzerland_config
        return load_switzerland_config(self.config_root, year)

    def _archive(self, year_dir: Path) -> Optional[Path]:
        current = year_dir / TAX_FILE
        if not current.exists():
            return None
        archive_dir = year_dir / "_archive"
        archive_dir.mkdir(exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        target = archive_dir / f"switzerland_{stamp}.yaml"
        shutil.copy2(current, target)
        return target

    def save_config(self, year: int, config: SwitzerlandConfig) -> Dict[str, Any]:
        """Write the tax tables for ``year``, keeping the previous file under ``_archive/``.

        The new file is written next to the old one and moved into place, so a
        failed write leaves the year as it was.
        """
        year_dir = self._year_dir(year)
        year_dir.mkdir(parents=True, exist_ok=True)
        config_file = year_dir / TAX_FILE
        archive_file = self._archive(year_dir)

        partial = year_dir / f".{TAX_FILE}.tmp"
        try:
            document = self._apply_custom_formatting(config.model_dump(by_alias=True, exclude_none=True))
            with open(partial, "w", encoding="utf-8") as f:
                f.write(f"# Swiss income & wealth tax tables, tax year {year}\n\n")
                _yaml_writer().dump(document, f)
            partial.replace(config_file)
        except Exception as e:
            partial.unlink(missing_ok=True)
            raise ValueError(f"Failed to save configuration: {e}") from e

        log.info("config_saved", year=year, archive=str(archive_file) if archive_file else None)
        return {
            "success": True,
            "message": f"Tax tables saved for {year}",
            "archive_file": str(archive_file) if archive_file else None,
        }

    def get_config_summary(self, year: int) -> Dict[str, Any]:
        config = self.load_config(year)
        cantons = [
            {
                "key": key,
                "name": canton.name,
                "strategy": canton.strategy,
                "multiplier": canton.multiplier,
                "commune_count": len(canton.communes),
            }
            for key, canton in config.cantons.items()
        ]
        return {
            "year": year,
            "schema_version": config.schema_version,
            "country": config.country,
            "currency": config.currency,
            "canton_count": len(cantons),
            "commune_count": sum(c["commune_count"] for c in cantons),
            "federal_segment_count": len(config.federal.segments),
            "cantons": cantons,
            "defaults": config.defaults,
        }

    def _edit(self, year: int, canton_key: str, change: Callable[[CantonTaxRule], Dict[str, Any]]) -> Dict[str, Any]:
        """Apply ``change`` to one canton, re-validate the whole year and save it."""
        from ..io.loader import _validate_switzerland_config

        config = self.load_config(year)
        canton = config.cantons.get(canton_key)
        if canton is None:
            raise ValueError(f"Canton '{canton_key}' does not exist")

        result = change(canton)
        _validate_switzerland_config(config)
        saved = self.save_config(year, config)
        return {"success": True, "canton_key": canton_key, **result, "archive_file": saved["archive_file"]}

    def set_commune_coefficient(
        self, year: int, canton_key: str, commune_key: str, coefficient: float, name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create or update one commune's coefficient."""

        def change(canton: CantonTaxRule) -> Dict[str, Any]:
            existing = canton.communes.get(commune_key)
            if existing is None and name is None:
                raise ValueError(
                    f"Commune '{commune_key}' does not exist in canton '{canton_key}'; pass a name to create it"
                )
            commune = CommuneTaxRule(name=name or existing.name, coefficient=coefficient)
            canton.communes[commune_key] = commune
            verb = "created" if existing is None else "updated"
            return {
                "commune_key": commune_key,
                "commune_name": commune.name,
                "created": existing is None,
                "previous_coefficient": existing.coefficient if existing else None,
                "coefficient": coefficient,
                "message": f"Commune '{commune.name}' {verb} in canton '{canton.name}'",
            }

        return self._edit(year, canton_key, change)

    def set_canton_multiplier(self, year: int, canton_key: str, multiplier: float) -> Dict[str, Any]:

        def change(canton: CantonTaxRule) -> Dict[str, Any]:
            previous, canton.multiplier = canton.multiplier, multiplier
            return {
                "previous_multiplier": previous,
                "multiplier": multiplier,
                "message": f"Canton '{canton.name}' multiplier set to {multiplier}",
            }

        return self._edit(year, canton_key, change)

    def _apply_custom_formatting(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Write table rows (federal segments, brackets, communes) in inline flow style."""
        from ruamel.yaml.comments import CommentedMap, CommentedSeq

        def flow_rows(rows):
            seq = CommentedSeq()
            for row in rows:
                row_map = CommentedMap(row)
                row_map.fa.set_flow_style()
                seq.append(row_map)
            return seq

        formatted = CommentedMap(config_dict)

        if "federal" in formatted:
            formatted.yaml_set_comment_before_after_key("federal", before="\n# Direct federal tax")
            federal = CommentedMap(formatted["federal"])
            federal["segments"] = flow_rows(federal.get("segments", []))
            formatted["federal"] = federal

        if "strategies" in formatted:
            strategies = CommentedMap(formatted["strategies"])
            geneva = CommentedMap(strategies["geneva"])
            geneva["brackets"] = flow_rows(geneva["brackets"])
            strategies["geneva"] = geneva

            romandie = CommentedMap(strategies["romandie"])
            romandie["tables"] = CommentedMap(
                {key: flow_rows(rows) for key, rows in romandie["tables"].items()}
            )
            strategies["romandie"] = romandie

            vaud = CommentedMap(strategies["vaud"])
            for key in ("income_points", "wealth_points"):
                points = CommentedSeq()
                for amount, tax in vaud[key]:
                    point = CommentedSeq([amount, tax])
                    point.fa.set_flow_style()
                    points.append(point)
                vaud[key] = points
            strategies["vaud"] = vaud
            formatted["strategies"] = strategies

        if "cantons" in formatted:
            formatted.yaml_set_comment_before_after_key("cantons", before="\n# Cantons and their communes")
            cantons = CommentedMap(formatted["cantons"])
            for canton_key, canton_config in cantons.items():
                canton_map = CommentedMap(canton_config)
                communes = CommentedMap()
                for commune_key, commune in canton_map.get("communes", {}).items():
                    commune_map = CommentedMap(commune)
                    commune_map.fa.set_flow_style()
                    communes[commune_key] = commune_map
                canton_map["communes"] = communes
                cantons[canton_key] = canton_map
            formatted["cantons"] = cantons

        return formatted

"""Skill descriptor loader.

Resolves descriptor sources into SkillDescriptor objects. A source is one of:

- a skill folder containing SKILL.md (YAML frontmatter + markdown body; the
  body is the core module)
- a skills root containing registry.yaml, which lists skill folders in order
- a skills root without registry.yaml (every child folder with SKILL.md,
  sorted by name)
- a YAML file holding one descriptor mapping or a ``skills:`` list
- an in-memory mapping with the same shape as the frontmatter, where module
  content is given inline under ``content``

Frontmatter shape:

    name: spring-transactions
    version: "1.2.0"
    description: Transaction handling review rules
    triggers:
      paths: ["**/*.java"]
      lexical: ["TransactionTemplate"]
      annotations: ["@Transactional"]
      case_sensitive: true
    core:
      size: 400
    modules:
      - id: propagation
        path: references/propagation.md
        triggers: ["Propagation."]
        concerns: [transactions]
        size: 900
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import frontmatter
import yaml

from ..errors import ConfigurationError
from .models import ModuleDescriptor, SkillDescriptor, TriggerSet

logger = logging.getLogger(__name__)

SKILL_FILE = "SKILL.md"
REGISTRY_FILE = "registry.yaml"
DEFAULT_VERSION = "1.0.0"
DEFAULT_CORE_ID = "core"
MAX_SKILL_FILE_SIZE = 10 * 1024 * 1024  # 10MB

DescriptorSource = Union[str, Path, Mapping]


def _is_safe_path(path: Path, base_dir: Path) -> bool:
    """Check that path resolves inside base_dir."""
    try:
        path.resolve().relative_to(base_dir.resolve())
        return True
    except ValueError:
        return False
    except (OSError, RuntimeError):
        return False


def _as_tuple(value: Any, field_name: str, source: Optional[str]) -> tuple[str, ...]:
    """Normalize a string or list of strings to a tuple."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        items = []
        for item in value:
            if not isinstance(item, (str, int, float)) or isinstance(item, bool):
                raise ConfigurationError(f"'{field_name}' entries must be strings, got {item!r}", source)
            items.append(str(item))
        return tuple(items)
    raise ConfigurationError(f"'{field_name}' must be a string or a list, got {type(value).__name__}", source)


def _parse_size(value: Any, field_name: str, source: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(f"'{field_name}' must be a non-negative integer, got {value!r}", source)
    return value


def parse_triggers(data: Any, source: Optional[str] = None) -> TriggerSet:
    """Parse a trigger block.

    A bare list is accepted as lexical tokens.
    """
    if data is None:
        return TriggerSet()
    if isinstance(data, (list, tuple, str)):
        return TriggerSet(lexical=_as_tuple(data, "triggers", source))
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"'triggers' must be a mapping, got {type(data).__name__}", source)

    unknown = set(data) - {"paths", "lexical", "annotations", "case_sensitive"}
    if unknown:
        raise ConfigurationError(f"Unknown trigger categories: {', '.join(sorted(unknown))}", source)

    case_sensitive = data.get("case_sensitive", True)
    if not isinstance(case_sensitive, bool):
        raise ConfigurationError("'triggers.case_sensitive' must be true or false", source)

    return TriggerSet(
        paths=_as_tuple(data.get("paths"), "triggers.paths", source),
        lexical=_as_tuple(data.get("lexical"), "triggers.lexical", source),
        annotations=_as_tuple(data.get("annotations"), "triggers.annotations", source),
        case_sensitive=case_sensitive,
    )


class SkillLoader:
    """Loads skill descriptors from folders, YAML files and mappings."""

    def load_sources(self, sources: Iterable[DescriptorSource]) -> list[SkillDescriptor]:
        """Load every source, in order.

        Raises:
            ConfigurationError: If any source is malformed
        """
        descriptors: list[SkillDescriptor] = []
        for source in sources:
            descriptors.extend(self.load_source(source))
        return descriptors

    def load_source(self, source: DescriptorSource) -> list[SkillDescriptor]:
        """Load the descriptors provided by one source."""
        if isinstance(source, Mapping):
            if "skills" in source and "name" not in source:
                return [self.from_mapping(item) for item in self._skill_list(source, None)]
            return [self.from_mapping(source)]

        path = Path(source).expanduser()
        if not path.exists():
            raise ConfigurationError("Descriptor source does not exist", str(path))

        if path.is_dir():
            if (path / SKILL_FILE).is_file():
                return [self.load_skill_dir(path)]
            if (path / REGISTRY_FILE).is_file():
                return self.load_registry_file(path / REGISTRY_FILE)
            return self.load_skills_root(path)

        if path.name == SKILL_FILE:
            return [self.load_skill_dir(path.parent)]
        if path.name == REGISTRY_FILE:
            return self.load_registry_file(path)
        if path.suffix in (".yaml", ".yml"):
            return self.load_yaml_file(path)

        raise ConfigurationError("Unsupported descriptor source", str(path))

    def load_skills_root(self, root: Path) -> list[SkillDescriptor]:
        """Load every child folder of root that holds a SKILL.md."""
        skill_dirs = sorted(p for p in root.iterdir() if p.is_dir() and (p / SKILL_FILE).is_file())
        if not skill_dirs:
            logger.warning(f"No skills found under {root}")
        return [self.load_skill_dir(d) for d in skill_dirs]

    def load_registry_file(self, registry_path: Path) -> list[SkillDescriptor]:
        """Load the skills listed in a registry.yaml, in listed order.

        Entries: ``name``, ``path`` (relative to the registry file, defaults
        to ``name``) and optional ``enabled``.
        """
        source = str(registry_path)
        content = self._read_yaml(registry_path)
        descriptors = []
        base_dir = registry_path.parent

        for entry in self._skill_list(content, source):
            if not isinstance(entry, Mapping):
                raise ConfigurationError(f"Registry entries must be mappings, got {entry!r}", source)
            rel = entry.get("path") or entry.get("name")
            if not rel:
                raise ConfigurationError("Registry entry needs a 'name' or 'path'", source)

            skill_dir = base_dir / str(rel)
            if not _is_safe_path(skill_dir, base_dir):
                raise ConfigurationError(f"Registry entry '{rel}' points outside the skills root", source)
            if not (skill_dir / SKILL_FILE).is_file():
                raise ConfigurationError(f"Registry entry '{rel}' has no {SKILL_FILE}", source)

            overrides = {}
            if "enabled" in entry:
                overrides["enabled"] = entry["enabled"]
            descriptors.append(self.load_skill_dir(skill_dir, overrides))
            logger.debug(f"Registered skill folder: {skill_dir}")

        logger.info(f"Loaded {len(descriptors)} skills from {registry_path}")
        return descriptors

    def load_yaml_file(self, path: Path) -> list[SkillDescriptor]:
        """Load one descriptor, or a ``skills:`` list, from a YAML file."""
        content = self._read_yaml(path)
        base_dir = path.parent
        if isinstance(content, Mapping) and "skills" in content and "name" not in content:
            return [self.from_mapping(item, base_dir, str(path)) for item in self._skill_list(content, str(path))]
        if not isinstance(content, Mapping):
            raise ConfigurationError("YAML descriptor must be a mapping", str(path))
        return [self.from_mapping(content, base_dir, str(path))]

    def load_skill_dir(self, skill_dir: Path, overrides: Optional[dict[str, Any]] = None) -> SkillDescriptor:
        """Load a skill folder whose SKILL.md body is the core module."""
        skill_md = skill_dir / SKILL_FILE
        source = str(skill_md)

        try:
            file_size = skill_md.stat().st_size
        except OSError as e:
            raise ConfigurationError(f"Cannot read {SKILL_FILE}: {e}", source) from e
        if file_size > MAX_SKILL_FILE_SIZE:
            raise ConfigurationError(f"{SKILL_FILE} is too large ({file_size} bytes)", source)

        try:
            post = frontmatter.loads(skill_md.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot read {SKILL_FILE}: {e}", source) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML frontmatter: {e}", source) from e

        if not post.metadata:
            raise ConfigurationError("Missing YAML frontmatter", source)

        data = dict(post.metadata)
        data.update(overrides or {})
        return self.from_mapping(data, skill_dir, source, core_body=post.content.strip())

    def from_mapping(
        self,
        data: Mapping,
        base_dir: Optional[Path] = None,
        source: Optional[str] = None,
        core_body: Optional[str] = None,
    ) -> SkillDescriptor:
        """Build a descriptor from a mapping.

        Args:
            data: Descriptor fields
            base_dir: Folder that relative module paths resolve against
            source: Where the mapping came from, for error messages
            core_body: Core content when the mapping came from SKILL.md

        Raises:
            ConfigurationError: If the mapping is malformed
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Descriptor must be a mapping, got {type(data).__name__}", source)

        name = data.get("name")
        if not name or not isinstance(name, str):
            raise ConfigurationError("Missing 'name'", source)
        source = source or name

        version = str(data.get("version") or DEFAULT_VERSION)
        enabled = data.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ConfigurationError("'enabled' must be true or false", source)

        core = self._parse_core(data.get("core"), base_dir, source, core_body)

        raw_modules = data.get("modules") or []
        if not isinstance(raw_modules, (list, tuple)):
            raise ConfigurationError("'modules' must be a list", source)
        modules = tuple(self._parse_module(m, base_dir, source) for m in raw_modules)

        return SkillDescriptor(
            name=name,
            version=version,
            description=str(data.get("description") or ""),
            triggers=parse_triggers(data.get("triggers"), source),
            core=core,
            modules=modules,
            enabled=enabled,
            source=source,
        )

    def _parse_core(
        self,
        data: Any,
        base_dir: Optional[Path],
        source: str,
        core_body: Optional[str],
    ) -> ModuleDescriptor:
        if data is None:
            data = {}
        elif isinstance(data, str):
            data = {"path": data}
        elif not isinstance(data, Mapping):
            raise ConfigurationError("'core' must be a mapping or a path", source)

        module_id = str(data.get("id") or DEFAULT_CORE_ID)
        content, module_source = self._resolve_content(data, base_dir, source, module_id)
        if content is None:
            content = core_body
            module_source = source
        if content is None:
            raise ConfigurationError("Core module has no content", source)

        return ModuleDescriptor(
            id=module_id,
            content=content,
            size=_parse_size(data.get("size"), "core.size", source),
            concerns=_as_tuple(data.get("concerns"), "core.concerns", source),
            source=module_source,
        )

    def _parse_module(self, data: Any, base_dir: Optional[Path], source: str) -> ModuleDescriptor:
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Module entries must be mappings, got {data!r}", source)

        module_id = data.get("id")
        if not module_id:
            raise ConfigurationError("Module entry is missing 'id'", source)
        module_id = str(module_id)

        content, module_source = self._resolve_content(data, base_dir, source, module_id)
        if content is None:
            raise ConfigurationError(f"Module '{module_id}' has no 'path' or 'content'", source)

        # Module files may carry their own frontmatter; the skill entry wins
        meta: dict[str, Any] = {}
        if module_source and module_source.endswith(".md"):
            try:
                post = frontmatter.loads(content)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid frontmatter in module '{module_id}': {e}", module_source) from e
            meta = dict(post.metadata)
            content = post.content.strip() if meta else content

        triggers = data.get("triggers", meta.get("triggers"))
        if isinstance(triggers, Mapping):
            unsupported = set(triggers) & {"paths", "case_sensitive"}
            if unsupported:
                raise ConfigurationError(
                    f"Module '{module_id}' triggers are content tokens; "
                    f"'{sorted(unsupported)[0]}' is only allowed on the skill",
                    source,
                )
            triggers = list(parse_triggers(triggers, source).tokens())

        return ModuleDescriptor(
            id=module_id,
            content=content,
            size=_parse_size(data.get("size", meta.get("size")), f"modules.{module_id}.size", source),
            triggers=_as_tuple(triggers, f"modules.{module_id}.triggers", source),
            concerns=_as_tuple(data.get("concerns", meta.get("concerns")), f"modules.{module_id}.concerns", source),
            source=module_source,
        )

    def _resolve_content(
        self,
        data: Mapping,
        base_dir: Optional[Path],
        source: str,
        module_id: str,
    ) -> tuple[Optional[str], Optional[str]]:
        """Return (content, source path) from inline content or a file reference."""
        if data.get("content") is not None:
            return str(data["content"]), None

        rel = data.get("path")
        if not rel:
            return None, None
        if base_dir is None:
            raise ConfigurationError(f"Module '{module_id}' references '{rel}' but the source has no folder", source)

        module_path = base_dir / str(rel)
        if not _is_safe_path(module_path, base_dir):
            raise ConfigurationError(f"Module '{module_id}' path '{rel}' points outside the skill folder", source)
        if not module_path.is_file():
            raise ConfigurationError(f"Module '{module_id}' references missing file '{rel}'", source)

        try:
            return module_path.read_text(encoding="utf-8"), str(module_path)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot read module '{module_id}': {e}", str(module_path)) from e

    def _read_yaml(self, path: Path) -> Any:
        try:
            return yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", str(path)) from e
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot read file: {e}", str(path)) from e

    def _skill_list(self, content: Any, source: Optional[str]) -> list:
        if not isinstance(content, Mapping) or not isinstance(content.get("skills"), list):
            raise ConfigurationError("Expected a 'skills' list", source)
        return content["skills"]

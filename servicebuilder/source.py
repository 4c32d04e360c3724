"""
Definition Sources

Readers that turn a configuration source into ``RawDefinition`` objects in
declaration order. Supported sources:

- XML files (``.xml``)::

    <services>
        <service name="billy.mock" class="myapp.clients.MockClient">
            <param name="username" value="billy" />
        </service>
        <service name="billy.testing" extends="billy.mock">
            <param name="subdomain" value="test.billy" />
        </service>
    </services>

  ``<client>`` elements are accepted as well as ``<service>``, and ``type``
  as well as ``class``.

- YAML files (``.yml``, ``.yaml``) and JSON files (``.json``)::

    services:
      billy.mock:
        class: myapp.clients.MockClient
        params:
          username: billy
      billy.testing:
        extends: billy.mock
        params:
          subdomain: test.billy

  The top-level ``services`` key is optional.

- In-memory mappings in the same shape as the YAML document.
"""

import json
import logging
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, List, Mapping, Union

import yaml

from .definition import RawDefinition
from .exceptions import SourceReadError

logger = logging.getLogger(__name__)

DefinitionSource = Union[str, os.PathLike, Mapping[str, Any]]

_DEFINITION_TAGS = ("service", "client")


def read_definitions(source: DefinitionSource) -> List[RawDefinition]:
    """Read raw definitions from a file path or a mapping.

    Args:
        source: Path to an XML/YAML/JSON file, or a mapping of definitions

    Returns:
        Raw definitions in declaration order

    Raises:
        SourceReadError: When the source cannot be opened or parsed
    """
    if isinstance(source, Mapping):
        return definitions_from_mapping(source)

    path = Path(source)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise SourceReadError(
            f"Unable to open service configuration file {source}",
            source=str(source),
        ) from e

    suffix = path.suffix.lower()
    logger.debug("Reading service definitions from %s", path)
    if suffix == ".xml":
        # Bytes so the parser honours the document's encoding declaration
        return definitions_from_xml(data, source=str(source))
    if suffix in (".yml", ".yaml"):
        text = _decode(data, source)
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise SourceReadError(
                f"Unable to parse service configuration file {source}: {e}",
                source=str(source),
            ) from e
        return definitions_from_mapping(document or {}, source=str(source))
    if suffix == ".json":
        text = _decode(data, source)
        try:
            document = json.loads(text)
        except ValueError as e:
            raise SourceReadError(
                f"Unable to parse service configuration file {source}: {e}",
                source=str(source),
            ) from e
        return definitions_from_mapping(document, source=str(source))

    raise SourceReadError(
        f"Unsupported service configuration format: {source}",
        source=str(source),
    )


def _decode(data: bytes, source: DefinitionSource) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise SourceReadError(
            f"Unable to parse service configuration file {source}: not valid UTF-8 ({e})",
            source=str(source),
        ) from e


def definitions_from_mapping(data: Any, source: str = "<mapping>") -> List[RawDefinition]:
    """Build raw definitions from a ``{name: {class, extends, params}}`` mapping."""
    if not isinstance(data, Mapping):
        raise SourceReadError(
            f"Service configuration {source} must be a mapping of services",
            source=source,
        )
    if "services" in data:
        data = data["services"]
        if not isinstance(data, Mapping):
            raise SourceReadError(
                f"services in {source} must be a mapping of services",
                source=source,
            )

    definitions = []
    for name, entry in data.items():
        if entry is None:
            entry = {}
        if not isinstance(entry, Mapping):
            raise SourceReadError(
                f"Definition for {name} in {source} must be a mapping",
                source=source,
            )
        params = entry.get("params") or {}
        if not isinstance(params, Mapping):
            raise SourceReadError(
                f"params for {name} in {source} must be a mapping",
                source=source,
            )
        type_id = entry.get("type") or entry.get("class")
        extends = entry.get("extends")
        for key, value in (("type", type_id), ("extends", extends)):
            if value is not None and not isinstance(value, str):
                raise SourceReadError(
                    f"{key} for {name} in {source} must be a string, got {value!r}",
                    source=source,
                )
        definitions.append(RawDefinition(
            name=str(name),
            type=type_id,
            extends=extends,
            params={str(k): v for k, v in params.items()},
        ))
    return definitions


def definitions_from_xml(text: Union[str, bytes], source: str = "<xml>") -> List[RawDefinition]:
    """Build raw definitions from an XML document.

    Pass ``bytes`` to let the parser apply the encoding declared in the
    XML prolog.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise SourceReadError(
            f"Unable to parse service configuration file {source}: {e}",
            source=source,
        ) from e

    definitions = []
    # iter() walks the tree in document order
    for element in root.iter():
        if element.tag not in _DEFINITION_TAGS:
            continue
        name = element.get("name")
        if not name:
            raise SourceReadError(
                f"A <{element.tag}> element in {source} is missing its name attribute",
                source=source,
            )
        params = {}
        for param in element.findall("param"):
            key = param.get("name")
            if not key:
                raise SourceReadError(
                    f"A <param> of {name} in {source} is missing its name attribute",
                    source=source,
                )
            params[key] = param.get("value", "")
        definitions.append(RawDefinition(
            name=name,
            type=element.get("type") or element.get("class"),
            extends=element.get("extends"),
            params=params,
        ))
    return definitions

"""
Parser for `*.tfunittest.hcl` test specification files.

Supports the HCL subset test files use: labelled blocks, attributes, quoted
strings, numbers, booleans, null, objects, tuples and `#`, `//`, `/* */`
comments. Template interpolation and heredocs are not supported.

    test "vpc cidr validation" {
      module = "../examples/vpc"
      vars = { cidr_block = "10.0.0.0/16" }

      mock "aws_vpc.main" {
        attributes = { id = "vpc-123" }
      }

      assert "cidr matches variable" {
        actual    = "output.vpc_cidr"
        expected  = "var.cidr_block"
        condition = "equals"
      }
    }
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from lark import Lark, Token, Transformer, UnexpectedInput
from lark.exceptions import VisitError
from pydantic import ValidationError

from terraspec.core.environment import TEST_FILE_GLOB
from terraspec.exceptions import DirectoryParseError
from terraspec.schemas.test_spec import TestSpecification

logger = logging.getLogger(__name__)

HCL_GRAMMAR = r"""
start: body

body: _item*
_item: attribute | block

attribute: IDENTIFIER "=" value
block: IDENTIFIER _label* "{" body "}"
_label: STRING | IDENTIFIER

?value: string
      | number
      | "true"  -> true
      | "false" -> false
      | "null"  -> null
      | object
      | tuple

string: STRING
number: NUMBER
object: "{" (object_item (","? object_item)* ","?)? "}"
object_item: _key ("=" | ":") value
_key: IDENTIFIER | STRING
tuple: "[" (value ("," value)* ","?)? "]"

IDENTIFIER: /[A-Za-z_][A-Za-z0-9_-]*/
STRING: /"(\\.|[^"\\\n])*"/
NUMBER: /-?\d+(\.\d+)?([eE][+-]?\d+)?/

LINE_COMMENT: /(#|\/\/)[^\n]*/
BLOCK_COMMENT: /\/\*(.|\n)*?\*\//

%import common.WS
%ignore WS
%ignore LINE_COMMENT
%ignore BLOCK_COMMENT
"""


@dataclass
class Attribute:
    name: str
    value: Any
    line: int


@dataclass
class Block:
    type: str
    labels: list[str]
    body: list[Union[Attribute, "Block"]]
    line: int


def unquote(token: str) -> str:
    """Decode a double-quoted HCL string literal."""
    value = json.loads(token, strict=False)
    return value.replace("$${", "${").replace("%%{", "%{")


def _token_text(tok: Token) -> str:
    return unquote(tok) if tok.type == "STRING" else str(tok)


class HclTransformer(Transformer):
    """Turns the parse tree into Attribute/Block objects and plain Python values."""

    def start(self, items):
        return items[0]

    def body(self, items):
        return list(items)

    def attribute(self, items):
        name, value = items
        return Attribute(name=str(name), value=value, line=name.line)

    def block(self, items):
        type_tok, *labels, body = items
        return Block(
            type=str(type_tok),
            labels=[_token_text(label) for label in labels],
            body=body,
            line=type_tok.line,
        )

    def string(self, items):
        return unquote(items[0])

    def number(self, items):
        text = str(items[0])
        if any(c in text for c in ".eE"):
            return float(text)
        return int(text)

    def true(self, _):
        return True

    def false(self, _):
        return False

    def null(self, _):
        return None

    def object(self, items):
        return dict(items)

    def object_item(self, items):
        key, value = items
        return _token_text(key), value

    def tuple(self, items):
        return list(items)


_parser = Lark(HCL_GRAMMAR, parser="lalr", maybe_placeholders=False)


def parse_hcl(source: str) -> list[Union[Attribute, Block]]:
    """Parse HCL source into its top-level body. Raises UnexpectedInput on syntax errors."""
    return HclTransformer().transform(_parser.parse(source))


# Schema mapping: HCL body -> plain dicts for the pydantic models

def _split_body(block: Block, allowed_attrs: set[str], allowed_blocks: set[str]):
    attrs: dict[str, Any] = {}
    blocks: dict[str, list[Block]] = {name: [] for name in allowed_blocks}
    where = f"{block.type} {' '.join(repr(l) for l in block.labels)}".strip()

    for item in block.body:
        if isinstance(item, Attribute):
            if item.name not in allowed_attrs:
                raise ValueError(f"line {item.line}: unsupported argument {item.name!r} in {where}")
            if item.name in attrs:
                raise ValueError(f"line {item.line}: duplicate argument {item.name!r} in {where}")
            attrs[item.name] = item.value
        else:
            if item.type not in allowed_blocks:
                raise ValueError(f"line {item.line}: unsupported block {item.type!r} in {where}")
            blocks[item.type].append(item)
    return attrs, blocks


def _single_label(block: Block) -> str:
    if len(block.labels) != 1:
        raise ValueError(
            f"line {block.line}: {block.type} block needs exactly one label, got {len(block.labels)}"
        )
    return block.labels[0]


def _require(attrs: dict[str, Any], name: str, block: Block) -> Any:
    if name not in attrs:
        raise ValueError(f"line {block.line}: missing required argument {name!r} in {block.type} {block.labels[0]!r}")
    return attrs[name]


def _mock_to_dict(block: Block) -> dict[str, Any]:
    attrs, _ = _split_body(block, {"attributes"}, set())
    return {"resource": _single_label(block), "attributes": attrs.get("attributes") or {}}


def _assert_to_dict(block: Block) -> dict[str, Any]:
    name = _single_label(block)
    attrs, _ = _split_body(block, {"actual", "expected", "condition"}, set())
    return {
        "name": name,
        "actual": _require(attrs, "actual", block),
        "expected": _require(attrs, "expected", block),
        "condition": _require(attrs, "condition", block),
    }


def _test_to_dict(block: Block) -> dict[str, Any]:
    name = _single_label(block)
    attrs, blocks = _split_body(block, {"module", "vars"}, {"mock", "assert"})
    return {
        "name": name,
        "module": _require(attrs, "module", block),
        "vars": attrs.get("vars") or {},
        "mocks": [_mock_to_dict(b) for b in blocks["mock"]],
        "asserts": [_assert_to_dict(b) for b in blocks["assert"]],
    }


def parse_source(source: str, path: str) -> TestSpecification:
    """Parse the text of one test file into a TestSpecification."""
    try:
        body = parse_hcl(source)
    except UnexpectedInput as e:
        raise DirectoryParseError(f"syntax error at line {e.line}, column {e.column}", path=path) from e
    except VisitError as e:
        raise DirectoryParseError(f"invalid literal: {e.orig_exc}", path=path) from e

    tests = []
    try:
        for item in body:
            if not isinstance(item, Block) or item.type != "test":
                kind = item.name if isinstance(item, Attribute) else item.type
                raise ValueError(f"line {item.line}: only test blocks are allowed at top level, got {kind!r}")
            tests.append(_test_to_dict(item))
        return TestSpecification.model_validate({"path": path, "tests": tests})
    except ValidationError as e:
        raise DirectoryParseError(f"invalid test specification: {e}", path=path) from e
    except ValueError as e:
        raise DirectoryParseError(str(e), path=path) from e


def parse_file(path: Union[str, Path]) -> TestSpecification:
    """Parse a single .tfunittest.hcl file."""
    path = Path(path)
    try:
        source = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise DirectoryParseError("file not found", path=str(path)) from None
    except (OSError, UnicodeDecodeError) as e:
        raise DirectoryParseError(f"cannot read file: {e}", path=str(path)) from e
    return parse_source(source, str(path))


def parse_directory(directory: Union[str, Path]) -> dict[str, TestSpecification]:
    """Find and parse all .tfunittest.hcl files directly inside `directory`."""
    directory = Path(directory)
    if not directory.is_dir():
        raise DirectoryParseError("test directory not found", path=str(directory))

    specs = {}
    for path in sorted(directory.glob(TEST_FILE_GLOB)):
        specs[str(path)] = parse_file(path)
        logger.debug(f"Parsed {path.name}: {len(specs[str(path)].tests)} test(s)")
    logger.info(f"Discovered {sum(len(s.tests) for s in specs.values())} test(s) in {len(specs)} file(s)")
    return specs

from __future__ import annotations

from pathlib import Path

import panflute as pf
import pytest

from blogdiagrams.builder.base import InterpretFailure, ParseFailure
from blogdiagrams.core.exceptions import ConfigurationError
from blogdiagrams.core.size import SizeSpec
from blogdiagrams.filter import main
from blogdiagrams.transforms import (
    DEFAULT_TRANSFORMS,
    Transform,
    diagrams_inline_xf,
    diagrams_xf,
    run_transforms,
)


def _images(doc: pf.Doc) -> list[pf.Image]:
    found: list[pf.Image] = []

    def collect(element: pf.Element, _doc: pf.Doc | None) -> None:
        if isinstance(element, pf.Image):
            found.append(element)

    doc.walk(collect)
    return found


def _code_blocks(doc: pf.Doc) -> list[pf.CodeBlock]:
    found: list[pf.CodeBlock] = []

    def collect(element: pf.Element, _doc: pf.Doc | None) -> None:
        if isinstance(element, pf.CodeBlock):
            found.append(element)

    doc.walk(collect)
    return found


def test_block_diagram_sees_definitions(builder, emitter, make_context, image_dir: Path) -> None:
    doc = pf.Doc(
        pf.CodeBlock("gSq = square 1", classes=["dia-def"]),
        pf.CodeBlock("dia = gSq", classes=["dia"]),
    )

    doc = diagrams_xf(doc, make_context())

    [request] = builder.requests
    assert request.declarations == ("dia = gSq", "gSq = square 1")
    assert request.expression == "dia"
    assert request.postprocess == "pad 1.1 . centerXY"
    assert len(doc.content) == 1
    para = doc.content[0]
    assert isinstance(para, pf.Para)
    [image] = para.content
    assert isinstance(image, pf.Image)
    assert Path(image.url).parent == image_dir
    assert Path(image.url).is_file()
    assert emitter.errors == []


def test_inline_diagram_renders_expression(builder, make_context) -> None:
    doc = pf.Doc(pf.Para(pf.Str("A"), pf.Space(), pf.Code("circle 1", classes=["dia"])))

    doc = diagrams_inline_xf(doc, make_context())

    [request] = builder.requests
    assert request.declarations == ()
    assert request.expression == "circle 1"
    assert request.postprocess is None
    para = doc.content[0]
    assert isinstance(para.content[2], pf.Image)
    assert isinstance(para.content[0], pf.Str)


def test_definition_blocks_are_deleted(make_context) -> None:
    doc = pf.Doc(
        pf.CodeBlock("a = circle 1", classes=["dia-def"]),
        pf.BlockQuote(pf.CodeBlock("b = square 1", classes=["dia", "dia-def"])),
        pf.CodeBlock("[dia-def]\nc = triangle 1"),
        pf.CodeBlock("main = pure ()", classes=["haskell"]),
    )

    doc = diagrams_xf(doc, make_context())

    remaining = _code_blocks(doc)
    assert [block.text for block in remaining] == ["main = pure ()"]
    assert isinstance(doc.content[0], pf.BlockQuote)
    assert len(doc.content[0].content) == 0


def test_embedded_tag_matches_class(builder, make_context) -> None:
    tagged = pf.Doc(pf.CodeBlock("[dia]\ndia = circle 1"))
    classed = pf.Doc(pf.CodeBlock("dia = circle 1", classes=["dia"]))

    tagged = diagrams_xf(tagged, make_context())
    classed = diagrams_xf(classed, make_context())

    assert builder.requests[0] == builder.requests[1]
    assert _images(tagged)[0].url == _images(classed)[0].url


def test_failing_block_keeps_source_and_appends_message(builder, emitter, make_context) -> None:
    builder.failures["undefinedThing"] = InterpretFailure("Variable not in scope: undefinedThing")
    doc = pf.Doc(
        pf.CodeBlock(
            "dia = undefinedThing",
            identifier="broken",
            classes=["dia"],
            attributes={"width": "50"},
        )
    )

    doc = diagrams_xf(doc, make_context())

    [block] = doc.content
    assert isinstance(block, pf.CodeBlock)
    assert block.text == (
        "dia = undefinedThing\nInterpreter error:\nVariable not in scope: undefinedThing"
    )
    assert block.identifier == "broken"
    assert block.classes == ["dia"]
    assert block.attributes == {"width": "50"}
    assert _images(doc) == []
    assert len(emitter.errors) == 1


def test_failing_inline_code_keeps_source(builder, emitter, make_context) -> None:
    builder.failures["circle ("] = ParseFailure("parse error (possibly incorrect indentation)")
    doc = pf.Doc(pf.Para(pf.Code("circle (", classes=["dia"])))

    doc = diagrams_inline_xf(doc, make_context())

    [code] = doc.content[0].content
    assert isinstance(code, pf.Code)
    assert code.text == "circle (\nParse error:\nparse error (possibly incorrect indentation)"
    assert code.classes == ["dia"]
    assert emitter.errors == ["\nParse error:\nparse error (possibly incorrect indentation)"]


def test_size_attributes_are_forwarded(builder, make_context) -> None:
    doc = pf.Doc(
        pf.CodeBlock("dia = circle 1", classes=["dia"], attributes={"width": "200", "height": "x"}),
        pf.Para(pf.Code("circle 1", classes=["dia"], attributes={"height": "32"})),
    )

    run_transforms(doc, context=make_context())

    inline_request, block_request = builder.requests
    assert inline_request.size == SizeSpec(height=32.0)
    assert block_request.size == SizeSpec(width=200.0)


def test_extra_copy_is_rendered_for_blocks(builder, emitter, make_context, tmp_path: Path) -> None:
    thumbs = tmp_path / "thumbs"
    doc = pf.Doc(
        pf.CodeBlock("dia = circle 1", classes=["dia"]),
        pf.Para(pf.Code("circle 2", classes=["dia"])),
    )

    doc = run_transforms(doc, context=make_context(imgdir=str(thumbs), imgsize="200x150"))

    inline_request, primary, extra = builder.requests
    assert primary.declarations == extra.declarations
    assert extra.size == SizeSpec(200.0, 150.0)
    assert len(list(thumbs.glob("*.png"))) == 1
    assert "diagram_extra_copy" in [name for name, _payload in emitter.events]
    assert len(_images(doc)) == 2


def test_no_extra_copy_after_failure(builder, emitter, make_context, tmp_path: Path) -> None:
    thumbs = tmp_path / "thumbs"
    builder.failures["bad"] = InterpretFailure("boom")
    doc = pf.Doc(pf.CodeBlock("dia = bad", classes=["dia"]))

    diagrams_xf(doc, make_context(imgdir=str(thumbs), imgsize="200x150"))

    assert len(builder.requests) == 1
    assert len(emitter.errors) == 1
    assert not list(thumbs.glob("*.png"))


def test_inline_pass_keeps_definitions(builder, make_context) -> None:
    doc = pf.Doc(
        pf.CodeBlock("gSq = square 1", classes=["dia-def"]),
        pf.Para(pf.Code("gSq", classes=["dia"])),
    )

    doc = diagrams_inline_xf(doc, make_context())

    assert builder.requests[0].declarations == ("gSq = square 1",)
    assert isinstance(doc.content[0], pf.CodeBlock)


def test_default_order_runs_inline_pass_first(builder, make_context) -> None:
    doc = pf.Doc(
        pf.Para(pf.Code("gSq", classes=["dia"])),
        pf.CodeBlock("dia = gSq", classes=["dia"]),
        pf.CodeBlock("gSq = square 1", classes=["dia-def"]),
    )

    doc = run_transforms(doc, DEFAULT_TRANSFORMS, context=make_context())

    assert [request.declarations for request in builder.requests] == [
        ("gSq = square 1",),
        ("dia = gSq", "gSq = square 1"),
    ]
    assert _code_blocks(doc) == []


def test_passes_can_be_disabled(builder, make_context) -> None:
    doc = pf.Doc(
        pf.Para(pf.Code("circle 1", classes=["dia"])),
        pf.CodeBlock("dia = circle 1", classes=["dia"]),
        pf.CodeBlock("a = 1", classes=["dia-def"]),
    )

    doc = run_transforms(doc, context=make_context(inline=False, blocks=False))

    assert builder.requests == []
    assert len(_code_blocks(doc)) == 2


def test_custom_transform_sequence(make_context) -> None:
    seen: list[str] = []

    def record(doc: pf.Doc, context) -> pf.Doc:
        seen.append(context.config.diagram_name)
        return doc

    custom = Transform("record", record)
    run_transforms(pf.Doc(), [custom], context=make_context(diagram_name="picture"))

    assert seen == ["picture"]


def test_custom_classes(builder, make_context) -> None:
    doc = pf.Doc(
        pf.CodeBlock("shape = circle 1", classes=["shared"]),
        pf.CodeBlock("picture = shape", classes=["diagram"]),
        pf.CodeBlock("dia = 1", classes=["dia"]),
    )
    context = make_context(
        diagram_class="diagram", definition_class="shared", diagram_name="picture"
    )

    doc = diagrams_xf(doc, context)

    [request] = builder.requests
    assert request.expression == "picture"
    assert request.declarations == ("picture = shape", "shape = circle 1")
    assert [block.text for block in _code_blocks(doc)] == ["dia = 1"]


def test_filter_main_uses_metadata(
    builder, emitter, make_doc, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("blogdiagrams.transforms.create_builder", lambda _config: builder)
    doc = make_doc(
        pf.CodeBlock("dia = circle 1", classes=["dia"]),
        metadata={"diagrams": {"image_dir": "img", "pad_factor": "1.5"}},
    )

    result = main(doc, emitter=emitter)

    assert result is doc
    [image] = _images(result)
    assert Path(image.url).parent == Path("img")
    assert (tmp_path / image.url).is_file()
    assert builder.requests[0].postprocess == "pad 1.5 . centerXY"


def test_filter_main_reports_invalid_configuration(emitter, make_doc) -> None:
    doc = make_doc(metadata={"diagrams": {"pad_factor": "-1"}})

    with pytest.raises(ConfigurationError):
        main(doc, emitter=emitter)

    assert len(emitter.errors) == 1
    assert emitter.errors[0].startswith("Invalid diagrams configuration")


def test_block_pass_can_run_twice_on_the_same_directory(builder, make_context) -> None:
    context = make_context()
    for _ in range(2):
        doc = pf.Doc(pf.CodeBlock("dia = circle 1", classes=["dia"]))
        doc = diagrams_xf(doc, context)
        assert len(_images(doc)) == 1
    assert len(builder.compiled) == 1

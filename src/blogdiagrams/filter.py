"""Pandoc filter entry point.

Run as ``pandoc --filter blogliterately-diagrams`` to render ``dia`` code in
any document pandoc can read.
"""

from __future__ import annotations

import panflute as pf

from blogdiagrams.core.diagnostics import ConsoleEmitter, DiagnosticEmitter
from blogdiagrams.core.exceptions import DiagramsError
from blogdiagrams.transforms import DEFAULT_TRANSFORMS, DiagramContext, run_transforms


def main(doc: pf.Doc | None = None, *, emitter: DiagnosticEmitter | None = None) -> pf.Doc | None:
    """Transform ``doc``, or the pandoc JSON document on stdin when omitted.

    When reading from stdin the result is written back to stdout and None is
    returned; otherwise the transformed document is returned.
    """
    standalone = doc is None
    if doc is None:
        doc = pf.load()

    if emitter is None:
        emitter = ConsoleEmitter()
    try:
        context = DiagramContext.from_document(doc, emitter=emitter)
    except DiagramsError as exc:
        emitter.error(str(exc), exc)
        raise
    if isinstance(emitter, ConsoleEmitter):
        emitter.verbosity = max(emitter.verbosity, context.config.verbosity)

    doc = run_transforms(doc, DEFAULT_TRANSFORMS, context=context)

    if standalone:
        pf.dump(doc)
        return None
    return doc


if __name__ == "__main__":
    main()

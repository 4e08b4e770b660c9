from stealthnav.diagnostics import DiagnosticCircle, DiagnosticLine, Diagnostics


def test_disabled_context_records_nothing():
    diagnostics = Diagnostics()
    diagnostics.line((0, 0), (1, 1), "path")
    diagnostics.circle((0, 0), 2.0, "fan-point")
    assert diagnostics.lines == []
    assert diagnostics.circles == []


def test_records_filtered_by_reason():
    diagnostics = Diagnostics(enabled=True)
    diagnostics.line((0, 0), (1, 1), "path")
    diagnostics.line((1, 1), (2, 2), "astar-edge")
    diagnostics.circle((3, 3), 2.0, "path")
    assert list(diagnostics.by_reason("path")) == [
        DiagnosticLine((0, 0), (1, 1), "path"),
        DiagnosticCircle((3, 3), 2.0, "path"),
    ]
    diagnostics.clear()
    assert diagnostics.lines == [] and diagnostics.circles == []

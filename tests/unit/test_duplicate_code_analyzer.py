"""Unit tests for DuplicateCodeAnalyzer."""

from clean_code.analysis.duplicate_code_analyzer import DuplicateCodeAnalyzer
from clean_code.config import EngineConfig
from clean_code.core.models import AnalyzerPriority, Block, IssueSeverity, IssueType

REPEATED = [
    "const total = price * quantity;",
    "const discount = total * rate;",
    "const taxed = (total - discount) * tax;",
    "logger.info(`charging ${taxed}`);",
    "gateway.charge(customer, taxed);",
]


def _text(lines):
    return "".join(line + "\n" for line in lines)


def test_contract_attributes(config):
    analyzer = DuplicateCodeAnalyzer(config)
    assert analyzer.id == "duplicate-code"
    assert analyzer.priority == AnalyzerPriority.MEDIUM
    assert analyzer.supports_block_analysis is True
    assert analyzer.requires_ast is False


def test_one_issue_per_occurrence(config, make_document):
    source = _text(REPEATED + ["// gap"] + REPEATED)
    issues = DuplicateCodeAnalyzer(config).analyze(make_document(source))

    assert len(issues) == 2
    assert all(issue.type == IssueType.DUPLICATE_CODE for issue in issues)
    assert all(issue.severity == IssueSeverity.WARNING for issue in issues)
    assert all(issue.message == "This code block is duplicated 2 times in this file." for issue in issues)

    first, second = issues
    assert (first.range.start.line, first.range.end.line) == (0, 4)
    assert (second.range.start.line, second.range.end.line) == (6, 10)
    assert second.range.end.character == len(REPEATED[-1])


def test_block_mode_is_block_relative(config, make_document):
    block_text = _text(REPEATED + ["// gap"] + REPEATED)
    document = make_document("\n" * 40 + block_text)
    block = Block(start_line=40, end_line=50, content=block_text)

    issues = DuplicateCodeAnalyzer(config).analyze(document, None, block)
    assert [issue.range.start.line for issue in issues] == [0, 6]


def test_ignore_comment_suppresses_one_occurrence(config, make_document):
    source = _text(REPEATED + ["// clean-code-ignore: duplicate-code"] + REPEATED)
    issues = DuplicateCodeAnalyzer(config).analyze(make_document(source))
    assert [issue.range.start.line for issue in issues] == [0]


def test_configured_minimum_size(make_document):
    analyzer = DuplicateCodeAnalyzer(EngineConfig(thresholds={"min_duplicate_block_size": 8}))
    source = _text(REPEATED + ["// gap"] + REPEATED)
    assert analyzer.analyze(make_document(source)) == []

"""Tests for transformation context models."""

import dataclasses

import pathspec
import pytest

from repo_broadcast.context import DirectoryMapping, DirectoryTransformContext, TransformContext


class TestTransformContext:
    """Tests for TransformContext."""

    def test_variables_copied(self):
        """Test that later changes to the caller's dict are not seen."""
        variables = {"A": "1"}
        ctx = TransformContext(variables=variables)
        variables["B"] = "2"

        assert dict(ctx.variables) == {"A": "1"}

    def test_variables_read_only(self):
        """Test that variables cannot be mutated through the context."""
        ctx = TransformContext(variables={"A": "1"})
        with pytest.raises(TypeError):
            ctx.variables["A"] = "2"  # type: ignore[index]

    def test_frozen(self):
        """Test that fields cannot be reassigned."""
        ctx = TransformContext(file_path="a.md")
        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.file_path = "b.md"  # type: ignore[misc]

    def test_none_variables(self):
        """Test that None variables become an empty mapping."""
        ctx = TransformContext(variables=None)  # type: ignore[arg-type]
        assert dict(ctx.variables) == {}

    @pytest.mark.parametrize(
        "source,target,expected",
        [
            ("a@x.com", "b@x.com", True),
            ("a@x.com", "a@x.com", False),
            ("", "b@x.com", False),
            ("a@x.com", "", False),
        ],
    )
    def test_email_rewrite_flags(self, source, target, expected):
        """Test when email rewriting is enabled."""
        ctx = TransformContext(
            source_security_email=source,
            target_security_email=target,
            source_support_email=source,
            target_support_email=target,
        )
        assert ctx.rewrites_security_email is expected
        assert ctx.rewrites_support_email is expected


class TestDirectoryMapping:
    """Tests for DirectoryMapping."""

    def test_no_excludes(self):
        """Test that nothing is excluded by default."""
        assert not DirectoryMapping(src=".github", dest=".github").matches_exclude("a.yml")

    def test_glob_excludes(self):
        """Test gitignore-style exclude patterns."""
        mapping = DirectoryMapping(
            src=".github", dest=".github", exclude=["*.bak", "workflows/local-*", "tmp/"]
        )

        assert mapping.matches_exclude("notes.bak")
        assert mapping.matches_exclude("nested/old.bak")
        assert mapping.matches_exclude("workflows/local-test.yml")
        assert mapping.matches_exclude("tmp/cache.json")
        assert not mapping.matches_exclude("workflows/ci.yml")

    def test_windows_separators(self):
        """Test that backslash paths are normalized before matching."""
        mapping = DirectoryMapping(src="a", dest="b", exclude=("docs/*.tmp",))
        assert mapping.matches_exclude("docs\\x.tmp")

    def test_exclude_spec_built_once(self, monkeypatch):
        """Test that exclude globs are compiled once per mapping, not per file."""
        calls = []
        original = pathspec.PathSpec.from_lines

        def counting_from_lines(*args, **kwargs):
            calls.append(args)
            return original(*args, **kwargs)

        monkeypatch.setattr(pathspec.PathSpec, "from_lines", counting_from_lines)

        mapping = DirectoryMapping(src="a", dest="b", exclude=("*.bak",))
        results = [mapping.matches_exclude(f"file{i}.bak") for i in range(10)]

        assert all(results)
        assert len(calls) == 1

    def test_equality_ignores_compiled_spec(self):
        """Test that mappings with the same fields compare equal."""
        assert DirectoryMapping(src="a", dest="b", exclude=("x",)) == DirectoryMapping(
            src="a", dest="b", exclude=("x",)
        )

    def test_exclude_is_tuple(self):
        """Test that a list of excludes is stored as a tuple."""
        mapping = DirectoryMapping(src="a", dest="b", exclude=["x"])  # type: ignore[arg-type]
        assert mapping.exclude == ("x",)

    def test_to_dict(self):
        """Test serialization."""
        mapping = DirectoryMapping(src="a", dest="b", exclude=("z", "y"))
        assert mapping.to_dict() == {"dest": "b", "exclude": ["y", "z"], "src": "a"}


class TestDirectoryTransformContext:
    """Tests for DirectoryTransformContext."""

    def test_create(self):
        """Test building a directory context."""
        base = TransformContext(source_repo="org/a", target_repo="org/b", file_path="x/y.md")
        mapping = DirectoryMapping(src="docs", dest="x")
        dctx = DirectoryTransformContext.create(base, mapping, "y.md", 2, 5)

        assert dctx.context is base
        assert dctx.is_from_directory
        assert dctx.directory_mapping is mapping
        assert dctx.relative_path == "y.md"
        assert dctx.transform_duration() >= 0

    def test_str_from_directory(self):
        """Test the diagnostic string for a directory file."""
        base = TransformContext(source_repo="org/a", target_repo="org/b", file_path="x/y.md")
        dctx = DirectoryTransformContext.create(
            base, DirectoryMapping(src="docs", dest="x"), "y.md", 2, 5
        )
        text = str(dctx)

        assert text.startswith(
            "DirectoryTransformContext{SourceRepo: org/a, TargetRepo: org/b, FilePath: x/y.md, "
            "IsFromDirectory: true, RelativePath: y.md, Progress: 3/5, DirectoryMapping: docs->x, "
            "Duration: "
        )
        assert text.endswith("ms}")

    def test_str_without_mapping(self):
        """Test that a missing mapping renders as <nil>."""
        dctx = DirectoryTransformContext.create(TransformContext(), None, "a", 0, 1)
        assert "DirectoryMapping: <nil>" in str(dctx)

    def test_str_not_from_directory(self):
        """Test the short form for individually listed files."""
        dctx = DirectoryTransformContext(context=TransformContext(file_path="README.md"))
        assert str(dctx) == "DirectoryTransformContext{FilePath: README.md, IsFromDirectory: false}"

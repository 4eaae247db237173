"""Tests for builds/assembler.py module.

Tests output discovery per architecture, payload layout and archive writing.
"""

import hashlib
import json
import zipfile

import pytest
from conftest import LIBRARY_NAME, make_project, write_staging

from native_publish.builds.assembler import (
    ANDROID_MANIFEST_ENTRY,
    CLASSES_JAR_ENTRY,
    DESCRIPTOR_ENTRY,
    archive_basename,
    assemble_payload,
    collect_artifacts,
    compute_file_hash,
    find_architecture_output,
    render_android_manifest,
    write_library_archive,
    write_sources_archive,
)
from native_publish.errors import MISSING_ARTIFACT, MissingArtifact
from native_publish.project.schema import TargetArchitectureSchema


class TestComputeFileHash:
    """Tests for compute_file_hash function."""

    def test_sha256(self, tmp_path):
        """Should match hashlib digest."""
        path = tmp_path / "lib.so"
        path.write_bytes(b"binary")
        assert compute_file_hash(path) == hashlib.sha256(b"binary").hexdigest()

    def test_other_algorithm(self, tmp_path):
        """Should support other hashlib algorithms."""
        path = tmp_path / "lib.so"
        path.write_bytes(b"binary")
        assert compute_file_hash(path, "sha1") == hashlib.sha1(b"binary").hexdigest()


class TestFindArchitectureOutput:
    """Tests for find_architecture_output function."""

    def test_single_match(self, staging_dir):
        """Should return the only matching file."""
        arch = TargetArchitectureSchema(name="arch1")
        path = find_architecture_output(staging_dir, arch, "*.so")
        assert path == staging_dir / "arch1" / LIBRARY_NAME

    def test_missing_directory(self, tmp_path):
        """Should raise MissingArtifact when the arch directory is absent."""
        arch = TargetArchitectureSchema(name="arch9")
        with pytest.raises(MissingArtifact) as exc_info:
            find_architecture_output(tmp_path, arch, "*.so")
        assert exc_info.value.architecture == "arch9"
        assert exc_info.value.code == MISSING_ARTIFACT

    def test_no_match(self, staging_dir):
        """Should raise MissingArtifact when nothing matches the pattern."""
        arch = TargetArchitectureSchema(name="arch1")
        with pytest.raises(MissingArtifact) as exc_info:
            find_architecture_output(staging_dir, arch, "*.dylib")
        assert exc_info.value.matches == []

    def test_ambiguous_match(self, staging_dir):
        """Should raise MissingArtifact listing every candidate."""
        (staging_dir / "arch1" / "libdemo-debug.so").write_bytes(b"x")
        arch = TargetArchitectureSchema(name="arch1")

        with pytest.raises(MissingArtifact) as exc_info:
            find_architecture_output(staging_dir, arch, "*.so")

        assert len(exc_info.value.matches) == 2
        assert "Ambiguous" in str(exc_info.value)

    def test_directories_are_ignored(self, staging_dir):
        """Should only match regular files."""
        (staging_dir / "arch1" / "deps.so").mkdir()
        arch = TargetArchitectureSchema(name="arch1")
        assert find_architecture_output(staging_dir, arch, "*.so").name == LIBRARY_NAME


class TestCollectArtifacts:
    """Tests for collect_artifacts function."""

    def test_one_artifact_per_architecture(self, project, staging_dir):
        """Should produce exactly one artifact per declared architecture."""
        artifacts = collect_artifacts(project, staging_dir)

        assert [a.architecture for a in artifacts] == ["arch1", "arch2"]
        assert artifacts[0].destination == f"jni/arch1/{LIBRARY_NAME}"
        assert artifacts[1].destination == f"jni/arch2/{LIBRARY_NAME}"

    @pytest.mark.parametrize("count", [1, 3, 5])
    def test_any_architecture_count(self, tmp_path, count):
        """Should yield N artifacts for N declared architectures."""
        names = [f"abi{i}" for i in range(count)]
        project = make_project(architectures=[{"name": n} for n in names])
        staging = write_staging(tmp_path / "staging", names)

        artifacts = collect_artifacts(project, staging)
        assert len(artifacts) == count
        assert {a.architecture for a in artifacts} == set(names)

    def test_labels_with_project_version(self, project, staging_dir):
        """Should label every artifact with the project version."""
        artifacts = collect_artifacts(project, staging_dir)
        assert {a.version for a in artifacts} == {project.version}

    def test_records_size_and_hash(self, project, staging_dir):
        """Should record size and sha256 of the source binary."""
        artifact = collect_artifacts(project, staging_dir)[0]
        assert artifact.size_bytes == len(b"ELF-arch1")
        assert artifact.sha256 == hashlib.sha256(b"ELF-arch1").hexdigest()

    def test_missing_second_architecture(self, project, staging_dir):
        """Should fail naming arch2 when its output is removed."""
        (staging_dir / "arch2" / LIBRARY_NAME).unlink()

        with pytest.raises(MissingArtifact) as exc_info:
            collect_artifacts(project, staging_dir)

        assert exc_info.value.architecture == "arch2"

    def test_per_architecture_pattern(self, tmp_path):
        """Should prefer an architecture's own output pattern."""
        project = make_project(
            architectures=[
                {"name": "arch1"},
                {"name": "arch2", "output_pattern": "libother.so"},
            ]
        )
        staging = write_staging(tmp_path / "staging", ["arch1"])
        (staging / "arch2").mkdir()
        (staging / "arch2" / "libother.so").write_bytes(b"other")

        artifacts = collect_artifacts(project, staging)
        assert artifacts[1].destination == "jni/arch2/libother.so"

    def test_empty_payload_prefix(self, staging_dir):
        """Should place binaries at the archive root without a prefix."""
        project = make_project(packaging={"format": "zip", "payload_prefix": ""})
        artifacts = collect_artifacts(project, staging_dir)
        assert artifacts[0].destination == f"arch1/{LIBRARY_NAME}"


class TestAssemblePayload:
    """Tests for assemble_payload function."""

    def test_copies_into_layout(self, project, staging_dir, tmp_path):
        """Should copy every binary into its architecture subpath."""
        artifacts = collect_artifacts(project, staging_dir)
        payload = assemble_payload(artifacts, tmp_path / "payload")

        files = sorted(p.relative_to(payload).as_posix() for p in payload.rglob("*.so"))
        assert files == [f"jni/arch1/{LIBRARY_NAME}", f"jni/arch2/{LIBRARY_NAME}"]
        assert (payload / "jni" / "arch2" / LIBRARY_NAME).read_bytes() == b"ELF-arch2"

    def test_replaces_previous_payload(self, project, staging_dir, tmp_path):
        """Should drop stale files from an earlier run."""
        payload_dir = tmp_path / "payload"
        stale = payload_dir / "jni" / "old-abi" / "libdemo.so"
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b"stale")

        assemble_payload(collect_artifacts(project, staging_dir), payload_dir)
        assert not stale.exists()


class TestWriteLibraryArchive:
    """Tests for write_library_archive function."""

    def test_aar_contents(self, project, staging_dir, tmp_path):
        """Should contain payload, descriptor, manifest and classes.jar."""
        payload = assemble_payload(
            collect_artifacts(project, staging_dir), tmp_path / "payload"
        )
        archive = write_library_archive(
            payload, tmp_path / "out" / "demo.aar", b'{"v": 1}', project.packaging
        )

        with zipfile.ZipFile(archive) as zf:
            names = zf.namelist()
            assert f"jni/arch1/{LIBRARY_NAME}" in names
            assert f"jni/arch2/{LIBRARY_NAME}" in names
            assert json.loads(zf.read(DESCRIPTOR_ENTRY)) == {"v": 1}
            assert b"co.example.demo" in zf.read(ANDROID_MANIFEST_ENTRY)
            assert CLASSES_JAR_ENTRY in names

    def test_zip_has_no_android_entries(self, staging_dir, tmp_path):
        """Should skip Android entries for plain zip packaging."""
        project = make_project(packaging={"format": "zip"})
        payload = assemble_payload(
            collect_artifacts(project, staging_dir), tmp_path / "payload"
        )
        archive = write_library_archive(
            payload, tmp_path / "demo.zip", b"{}", project.packaging
        )

        with zipfile.ZipFile(archive) as zf:
            assert ANDROID_MANIFEST_ENTRY not in zf.namelist()
            assert DESCRIPTOR_ENTRY in zf.namelist()

    def test_deterministic(self, project, staging_dir, tmp_path):
        """Should write identical bytes for identical inputs."""
        payload = assemble_payload(
            collect_artifacts(project, staging_dir), tmp_path / "payload"
        )
        first = write_library_archive(
            payload, tmp_path / "a.aar", b"{}", project.packaging
        ).read_bytes()
        second = write_library_archive(
            payload, tmp_path / "b.aar", b"{}", project.packaging
        ).read_bytes()
        assert first == second


class TestRenderAndroidManifest:
    """Tests for render_android_manifest function."""

    def test_min_sdk(self, project):
        """Should include namespace and minimum SDK."""
        manifest = render_android_manifest(project.packaging).decode()
        assert 'package="co.example.demo"' in manifest
        assert 'android:minSdkVersion="24"' in manifest

    def test_without_min_sdk(self):
        """Should omit uses-sdk without a minimum SDK."""
        project = make_project(packaging={"namespace": "co.example.demo"})
        assert b"uses-sdk" not in render_android_manifest(project.packaging)


class TestWriteSourcesArchive:
    """Tests for write_sources_archive function."""

    def test_writes_tree(self, tmp_path):
        """Should archive every file relative to the sources root."""
        sources = tmp_path / "src"
        (sources / "core").mkdir(parents=True)
        (sources / "core" / "lib.rs").write_text("fn main() {}")

        archive = write_sources_archive(sources, tmp_path / "demo-sources.jar")
        with zipfile.ZipFile(archive) as zf:
            assert zf.namelist() == ["core/lib.rs"]

    def test_missing_directory(self, tmp_path):
        """Should raise FileNotFoundError for a missing directory."""
        with pytest.raises(FileNotFoundError):
            write_sources_archive(tmp_path / "nope", tmp_path / "x.jar")


class TestArchiveBasename:
    """Tests for archive_basename function."""

    def test_plain(self, project):
        assert archive_basename(project) == "demo-core-0.1.4"

    def test_classifier(self, project):
        assert archive_basename(project, "sources") == "demo-core-0.1.4-sources"

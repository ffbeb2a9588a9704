"""
Tests for the filesystem resolver and the echo resource.
"""

import asyncio
import os

import pytest

from polaris.resource import EchoResource, FilesystemResource
from polaris.status import Status


def link_lines(response):
    return [
        line for line in response.content.decode().split("\n")
        if line.startswith("=> ")
    ]


class TestDirectoryListing:
    def test_root_listing(self, content_root):
        response = FilesystemResource(content_root).resolve("/")

        assert response.status_code is Status.SUCCESS
        assert response.meta == "text/gemini"
        assert response.content == (
            b"\n### Path: [ . ]\n=> /sub sub\n=> /a.gmi a.gmi\n\n"
        )

    def test_empty_path_is_root(self, content_root):
        resource = FilesystemResource(content_root)
        assert resource.resolve("") == resource.resolve("/")

    def test_hidden_entries_skipped(self, content_root):
        lines = link_lines(FilesystemResource(content_root).resolve("/"))

        assert "=> /a.gmi a.gmi" in lines
        assert "=> /sub sub" in lines
        assert not any(".hidden" in line for line in lines)

    def test_descending_order(self, content_root):
        for name in ["zeta.txt", "Mid.gmi", "b c.gmi", "alpha.gmi"]:
            (content_root / name).write_text("x")

        lines = link_lines(FilesystemResource(content_root).resolve("/"))

        assert lines == sorted(lines, reverse=True)
        assert lines[0] == "=> /zeta.txt zeta.txt"
        assert lines[-1] == "=> /Mid.gmi Mid.gmi"

    def test_link_targets_are_percent_encoded(self, content_root):
        (content_root / "b c:d?.gmi").write_text("x")
        (content_root / "sub" / "x#y@z.gmi").write_text("x")
        resource = FilesystemResource(content_root)

        assert "=> /b%20c%3Ad%3F.gmi b c:d?.gmi" in link_lines(resource.resolve("/"))
        assert "=> /sub/x%23y%40z.gmi x#y@z.gmi" in link_lines(resource.resolve("/sub"))

    def test_subdirectory_listing(self, content_root):
        response = FilesystemResource(content_root).resolve("/sub/")

        assert b"### Path: [ sub/ ]" in response.content
        assert link_lines(response) == ["=> /sub/b.txt b.txt"]

    def test_header_and_footer(self, content_root):
        (content_root / ".header.gmi").write_text("# Welcome\n")
        (content_root / ".footer.gmi").write_text("bye\n")

        body = FilesystemResource(content_root).resolve("/").content.decode()

        assert body.startswith("# Welcome\n\n### Path: [ . ]\n")
        assert body.endswith("=> /a.gmi a.gmi\n\nbye\n")

    def test_crlf_header_kept(self, content_root):
        (content_root / ".header.gmi").write_bytes(b"# Top\r\n")
        (content_root / ".footer.gmi").write_bytes(b"end\rdone\r\n")

        body = FilesystemResource(content_root).resolve("/").content

        assert body.startswith(b"# Top\r\n\n### Path: [ . ]\n")
        assert body.endswith(b"\nend\rdone\r\n")

    def test_subdirectory_uses_root_header(self, content_root):
        (content_root / ".header.gmi").write_text("# Top\n")
        body = FilesystemResource(content_root).resolve("/sub").content.decode()
        assert body.startswith("# Top\n")

    def test_enumeration_failure(self, content_root, monkeypatch):
        def broken(path):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr("polaris.resource.os.listdir", broken)
        response = FilesystemResource(content_root).resolve("/sub")

        assert response.status_code is Status.CGI_ERROR
        assert response.meta.startswith("Failed to generate directory list : ")
        assert "Permission denied" in response.meta


class TestFiles:
    def test_gemtext_file(self, content_root):
        response = FilesystemResource(content_root).resolve("/a.gmi")

        assert response.status_code is Status.SUCCESS
        assert response.meta == "text/gemini"
        assert response.content == b"# A\n"

    def test_mime_type_guessed(self, content_root):
        response = FilesystemResource(content_root).resolve("/sub/b.txt")
        assert response.meta == "text/plain"

    def test_unknown_extension_defaults_to_gemtext(self, content_root):
        (content_root / "data.zzzq").write_bytes(b"?")
        response = FilesystemResource(content_root).resolve("/data.zzzq")
        assert response.meta == "text/gemini"

    def test_binary_file_verbatim(self, content_root):
        data = b"\x89PNG\r\n\x1a\n\x00\x00" + bytes(range(256))
        (content_root / "pic.png").write_bytes(data)

        response = FilesystemResource(content_root).resolve("/pic.png")

        assert response.meta == "image/png"
        assert response.content == data

    def test_hidden_file_fetchable(self, content_root):
        response = FilesystemResource(content_root).resolve("/.hidden")
        assert response.content == b"secret\n"

    def test_missing(self, content_root):
        response = FilesystemResource(content_root).resolve("/nope.gmi")

        assert response.status_code is Status.NOT_FOUND
        assert response.meta == "Not found"

    def test_read_failure(self, content_root, monkeypatch):
        real_open = open

        def failing_open(path, *args, **kwargs):
            if str(path).endswith("a.gmi"):
                raise OSError(5, "Input/output error")
            return real_open(path, *args, **kwargs)

        monkeypatch.setattr("builtins.open", failing_open)
        response = FilesystemResource(content_root).resolve("/a.gmi")

        assert response.status_code is Status.CGI_ERROR
        assert response.meta.startswith("Failed to read file : ")


class TestTextMode:
    def test_footer_appended(self, content_root):
        (content_root / ".footer.gmi").write_text("-- end\n")
        resource = FilesystemResource(content_root, content_mode="text")

        response = resource.resolve("/sub/b.txt")

        assert response.meta == "text/gemini"
        assert response.content == b"b\n-- end\n"

    def test_crlf_file_kept(self, content_root):
        (content_root / "crlf.gmi").write_bytes(b"line one\r\nline two\r\n")
        (content_root / ".footer.gmi").write_bytes(b"bye\r\n")
        resource = FilesystemResource(content_root, content_mode="text")

        response = resource.resolve("/crlf.gmi")

        assert response.content == b"line one\r\nline two\r\nbye\r\n"

    def test_non_utf8_file(self, content_root):
        (content_root / "bad.gmi").write_bytes(b"\xff\xfe\xfa")
        resource = FilesystemResource(content_root, content_mode="text")

        response = resource.resolve("/bad.gmi")

        assert response.status_code is Status.CGI_ERROR
        assert response.meta.startswith("Failed to read file : ")

    def test_unknown_mode(self, content_root):
        with pytest.raises(ValueError):
            FilesystemResource(content_root, content_mode="fancy")


class TestRobots:
    def test_missing_robots_is_empty_success(self, content_root):
        response = FilesystemResource(content_root).resolve("/robots.txt")

        assert response.status_code is Status.SUCCESS
        assert response.meta == "text/plain"
        assert response.content == b""

    def test_robots_served_from_dotfile(self, content_root):
        (content_root / ".robots.txt").write_text("User-agent: *\nDisallow: /sub\n")
        response = FilesystemResource(content_root).resolve("/robots.txt")

        assert response.meta == "text/plain"
        assert response.content == b"User-agent: *\nDisallow: /sub\n"


class TestSandbox:
    @pytest.mark.parametrize("path", [
        "/../../etc/passwd",
        "../etc/passwd",
        "/sub/../../etc/passwd",
        "/./../root/a.gmi",
    ])
    def test_traversal_is_not_found(self, content_root, path):
        response = FilesystemResource(content_root).resolve(path)
        assert response.status_code is Status.NOT_FOUND

    def test_dotdot_inside_root_allowed(self, content_root):
        response = FilesystemResource(content_root).resolve("/sub/../a.gmi")
        assert response.content == b"# A\n"

    def test_symlink_out_of_root(self, content_root, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_text("nope")
        os.symlink(outside / "secret.txt", content_root / "link.txt")
        os.symlink(outside, content_root / "linkdir")

        resource = FilesystemResource(content_root)

        assert resource.resolve("/link.txt").status_code is Status.NOT_FOUND
        assert resource.resolve("/linkdir").status_code is Status.NOT_FOUND
        assert resource.resolve("/linkdir/secret.txt").status_code is Status.NOT_FOUND

    def test_null_byte(self, content_root):
        response = FilesystemResource(content_root).resolve("/a\x00.gmi")
        assert response.status_code is Status.NOT_FOUND

    def test_root_must_be_directory(self, content_root):
        with pytest.raises(ValueError):
            FilesystemResource(content_root / "a.gmi")


class TestCall:
    def test_uses_context_path(self, content_root, make_context):
        resource = FilesystemResource(content_root)
        response = asyncio.run(resource(make_context("/a.gmi")))
        assert response.content == b"# A\n"


class TestEcho:
    def test_echoes_decoded_query(self, make_context):
        response = asyncio.run(EchoResource()(make_context("/echo", "hello%20world")))

        assert response.status_code is Status.SUCCESS
        assert response.meta == "text/plain"
        assert response.content == b"hello world\r\n"

    def test_prompts_without_query(self, make_context):
        response = asyncio.run(EchoResource()(make_context("/echo")))

        assert response.status_code is Status.INPUT
        assert response.meta == "Please enter some text"

    def test_first_segment_only(self, make_context):
        response = asyncio.run(EchoResource()(make_context("/echo/more", "a%2Bb")))
        assert response.content == b"a+b\r\n"

    @pytest.mark.parametrize("path", ["/", "", "/other", "/echoes"])
    def test_help_elsewhere(self, make_context, path):
        response = asyncio.run(EchoResource()(make_context(path, "ignored")))

        assert response.status_code is Status.SUCCESS
        assert response.meta == "text/gemini"
        assert b"=> /echo" in response.content

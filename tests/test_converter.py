import json
import os

import pytest
from lxml import etree

from har_to_jmx.converter import HarToJmxConverter, convert
from har_to_jmx.errors import MalformedHeaderError, MalformedInputError, MalformedUrlError

from conftest import make_entry, make_har, prop


def load_samplers(path):
    tree = etree.parse(path)
    return tree.getroot().findall("hashTree/hashTree/HTTPSamplerProxy")


class TestConvert:
    def test_example_entry(self, write_har, tmp_path, example_entry):
        out = str(tmp_path / "plan.jmx")
        result = convert(write_har([example_entry]), out)

        assert result.output_path == out
        assert result.samplers == 1
        assert result.skipped == []
        sampler, = load_samplers(out)
        assert prop(sampler, "HTTPSampler.domain") == "http://example.com:8080/api"
        assert prop(sampler, "HTTPSampler.port") == "8080"
        assert prop(sampler, "HTTPSampler.method") == "POST"

        args = sampler.xpath("elementProp[@name='HTTPsampler.Arguments']/collectionProp/elementProp")
        assert [prop(a, "Argument.value") for a in args] == ["a=1"]

        wrapper = sampler.getparent()
        headers = wrapper.find("hashTree/HeaderManager/collectionProp")
        assert [(prop(h, "Header.name"), prop(h, "Header.value")) for h in headers] == [("X-Test", "v")]
        cookies = wrapper.find("hashTree/CookieManager/collectionProp")
        assert [(prop(c, "Cookie.name"), prop(c, "Cookie.value")) for c in cookies] == [("session", "abc")]

    def test_entry_without_body_or_headers(self, write_har, tmp_path):
        out = str(tmp_path / "plan.jmx")
        convert(write_har([{"request": {"url": "http://a.test/", "method": "GET"}}]), out)
        sampler, = load_samplers(out)
        wrapper = sampler.getparent()
        assert len(wrapper.find("hashTree/CookieManager/collectionProp")) == 0
        assert wrapper.find("hashTree/HeaderManager") is None
        assert sampler.xpath("elementProp/collectionProp/elementProp") == []

    def test_order_and_cardinality(self, write_har, tmp_path):
        urls = [f"https://shop.test/item/{i}" for i in range(10)]
        out = str(tmp_path / "plan.jmx")
        result = convert(write_har([make_entry(u) for u in urls]), out)
        assert result.samplers == 10
        assert [s.get("testname") for s in load_samplers(out)] == urls

    def test_missing_entries_writes_skeleton(self, write_har, tmp_path):
        out = str(tmp_path / "plan.jmx")
        result = convert(write_har(text=json.dumps({"log": {"version": "1.2"}})), out)
        assert result.missing_entries is True
        assert result.samplers == 0
        root = etree.parse(out).getroot()
        assert root.tag == "jmeterTestPlan"
        assert root.find("hashTree/TestPlan") is not None
        assert load_samplers(out) == []

    def test_malformed_input_writes_nothing(self, write_har, tmp_path):
        out = tmp_path / "plan.jmx"
        with pytest.raises(MalformedInputError):
            convert(write_har(text="<html>not a har</html>"), str(out))
        assert not out.exists()

    def test_missing_har_file(self, tmp_path):
        out = tmp_path / "plan.jmx"
        with pytest.raises(FileNotFoundError):
            convert(str(tmp_path / "nope.har"), str(out))
        assert not out.exists()

    def test_creates_output_directory(self, write_har, tmp_path):
        out = tmp_path / "nested" / "dir" / "plan.jmx"
        convert(write_har([make_entry("http://a.test/")]), str(out))
        assert out.exists()


class TestErrorPolicy:
    @pytest.fixture
    def har(self):
        bad_header = make_entry("http://a.test/3")
        bad_header["request"]["headers"] = [{"value": "no name"}]
        return make_har([
            make_entry("http://a.test/1"),
            make_entry("/relative"),
            bad_header,
            make_entry("http://a.test/4"),
        ])

    def test_skips_malformed_entries(self, har):
        doc, result = HarToJmxConverter().build(har)
        assert [s.get("testname") for s in doc.samplers()] == ["http://a.test/1", "http://a.test/4"]
        assert result.samplers == 2
        assert [(s.index, s.url) for s in result.skipped] == [(1, "/relative"), (2, "http://a.test/3")]
        assert isinstance(result.skipped[0].error, MalformedUrlError)
        assert isinstance(result.skipped[1].error, MalformedHeaderError)

    def test_unparsable_url_is_skipped(self):
        har = make_har([make_entry("http://a.test/"), make_entry("http://[::1/x")])
        doc, result = HarToJmxConverter().build(har)
        assert result.samplers == 1
        assert [(s.index, s.url) for s in result.skipped] == [(1, "http://[::1/x")]
        assert isinstance(result.skipped[0].error, MalformedUrlError)

    def test_lone_surrogates_are_dropped(self):
        har = make_har([make_entry("http://a.test/", headers=[("X-Odd", "a\ud800b")])])
        doc, result = HarToJmxConverter().build(har)
        assert result.samplers == 1
        header = doc.root.find("hashTree/hashTree/hashTree/HeaderManager/collectionProp/elementProp")
        assert prop(header, "Header.value") == "ab"
        etree.fromstring(doc.tostring())

    def test_strict_aborts(self, har):
        with pytest.raises(MalformedUrlError) as excinfo:
            HarToJmxConverter(strict=True).build(har)
        assert excinfo.value.index == 1

    def test_strict_writes_nothing(self, har, tmp_path):
        out = tmp_path / "plan.jmx"
        converter = HarToJmxConverter(read_all_text=lambda path: har, strict=True)
        with pytest.raises(MalformedUrlError):
            converter.convert("capture.har", str(out))
        assert not out.exists()


class TestCollaborators:
    def test_injected_reader(self, tmp_path):
        seen = []

        def read_all_text(path):
            seen.append(path)
            return make_har([make_entry("http://a.test/")])

        out = str(tmp_path / "plan.jmx")
        result = HarToJmxConverter(read_all_text=read_all_text).convert("in-memory.har", out)
        assert seen == ["in-memory.har"]
        assert result.samplers == 1
        assert os.path.exists(out)

    def test_reader_error_propagates(self, tmp_path):
        def read_all_text(path):
            raise PermissionError(path)

        with pytest.raises(PermissionError):
            HarToJmxConverter(read_all_text=read_all_text).convert("x.har", str(tmp_path / "p.jmx"))

    def test_unwritable_target(self, write_har, tmp_path):
        target = tmp_path / "taken"
        target.mkdir()
        with pytest.raises(OSError):
            convert(write_har([make_entry("http://a.test/")]), str(target))

    def test_bom_prefixed_file(self, tmp_path):
        har = tmp_path / "fiddler.har"
        har.write_bytes(b"\xef\xbb\xbf" + make_har([make_entry("http://a.test/")]).encode("utf-8"))
        result = convert(str(har), str(tmp_path / "plan.jmx"))
        assert result.samplers == 1

    def test_injected_saver(self, tmp_path):
        saved = []
        converter = HarToJmxConverter(
            read_all_text=lambda path: make_har([make_entry("http://a.test/")]),
            save=lambda doc, path: saved.append((path, len(doc.samplers()))),
        )
        result = converter.convert("capture.har", "memory://plan.jmx")
        assert saved == [("memory://plan.jmx", 1)]
        assert result.output_path == "memory://plan.jmx"
        assert not (tmp_path / "plan.jmx").exists()

    def test_non_utf8_file(self, tmp_path):
        har = tmp_path / "latin1.har"
        har.write_bytes(b'{"log": {"entries": [], "comment": "caf\xe9"}}')
        out = tmp_path / "plan.jmx"
        with pytest.raises(MalformedInputError):
            convert(str(har), str(out))
        assert not out.exists()

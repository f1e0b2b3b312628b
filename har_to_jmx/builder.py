"""JMX builder: a JMeter test plan with one HTTP sampler per request record.

Layout of the produced document::

    jmeterTestPlan
      hashTree                      <- top-level container
        TestPlan                    <- settings, fixed
        hashTree
        hashTree                    <- one wrapper per record, in order
          HTTPSamplerProxy
          hashTree
            CookieManager
            hashTree
            HeaderManager           <- only when the record has headers
            hashTree
"""

import logging
import os
import re
from typing import Iterable, List, Tuple

from lxml import etree

from .errors import MalformedHeaderError
from .reader import Cookie, RequestRecord

logger = logging.getLogger(__name__)

PLAN_ATTRIBUTES = {"version": "1.2", "properties": "2.9", "jmeter": "3.1 r1770033"}
SAMPLER_PROTOCOL = "http"
SAMPLER_IMPLEMENTATION = "HttpClient4"

_INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\ud800-\udfff\uFFFE\uFFFF]")


def xml_text(value) -> str:
    if value is None:
        return ""
    return _INVALID_XML_CHARS.sub("", str(value))


def string_prop(parent, name: str, value="") -> etree._Element:
    prop = etree.SubElement(parent, "stringProp", name=name)
    prop.text = xml_text(value)
    return prop


def bool_prop(parent, name: str, value: bool) -> etree._Element:
    prop = etree.SubElement(parent, "boolProp", name=name)
    prop.text = "true" if value else "false"
    return prop


def long_prop(parent, name: str, value: int) -> etree._Element:
    prop = etree.SubElement(parent, "longProp", name=name)
    prop.text = str(value)
    return prop


class JmxDocument:
    """In-memory test plan owned by a single conversion run."""

    def __init__(self, root: etree._Element):
        self.root = root

    @property
    def container(self) -> etree._Element:
        return self.root.find("hashTree")

    @property
    def test_plan(self) -> etree._Element:
        return self.container.find("TestPlan")

    def samplers(self) -> List[etree._Element]:
        return self.root.findall("hashTree/hashTree/HTTPSamplerProxy")

    def tostring(self) -> bytes:
        etree.indent(self.root, space="  ")
        return b"<?xml version=\"1.0\" encoding=\"UTF-8\"?>\n" + etree.tostring(
            self.root, encoding="utf-8", pretty_print=True
        )

    def save(self, path: str):
        out_dir = os.path.dirname(path) or "."
        os.makedirs(out_dir, exist_ok=True)
        with open(path, "wb") as f:
            f.write(self.tostring())
        logger.debug("JMX written: %s", path)


def new_document() -> JmxDocument:
    root = etree.Element("jmeterTestPlan", **PLAN_ATTRIBUTES)
    root_ht = etree.SubElement(root, "hashTree")

    test_plan = etree.SubElement(
        root_ht, "TestPlan",
        guiclass="TestPlanGui",
        testclass="TestPlan",
        testname="Test Plan",
        enabled="true"
    )
    string_prop(test_plan, "TestPlan.comments")
    bool_prop(test_plan, "TestPlan.functional_mode", False)
    bool_prop(test_plan, "TestPlan.serialize_threadgroups", False)
    user_vars = etree.SubElement(
        test_plan, "elementProp",
        name="TestPlan.user_defined_variables",
        elementType="Arguments",
        guiclass="ArgumentsPanel",
        testclass="Arguments",
        testname="User Defined Variables",
        enabled="true"
    )
    etree.SubElement(user_vars, "collectionProp", name="Arguments.arguments")
    string_prop(test_plan, "TestPlan.user_define_classpath")
    etree.SubElement(root_ht, "hashTree")

    return JmxDocument(root)


def split_header(header: str) -> Tuple[str, str]:
    """Split ``"Name: Value"`` on the first colon."""
    name, sep, value = header.partition(":")
    if not sep:
        raise MalformedHeaderError(f"header has no colon: {header!r}")
    return name, value.lstrip()


def body_argument(post_body: str) -> etree._Element:
    arg = etree.Element("elementProp", name="", elementType="HTTPArgument")
    bool_prop(arg, "HTTPArgument.always_encode", False)
    string_prop(arg, "Argument.value", post_body)
    string_prop(arg, "Argument.metadata", "=")
    bool_prop(arg, "HTTPArgument.use_equals", True)
    string_prop(arg, "Argument.name", "")
    return arg


def http_sampler(record: RequestRecord) -> etree._Element:
    sampler = etree.Element(
        "HTTPSamplerProxy",
        guiclass="HttpTestSampleGui",
        testclass="HTTPSamplerProxy",
        testname=xml_text(record.url),
        enabled="true"
    )

    args = etree.SubElement(
        sampler, "elementProp",
        name="HTTPsampler.Arguments",
        elementType="Arguments",
        guiclass="HTTPArgumentsPanel",
        testclass="Arguments",
        enabled="true"
    )
    args_coll = etree.SubElement(args, "collectionProp", name="Arguments.arguments")
    if record.post_body:
        bool_prop(sampler, "HTTPSampler.postBodyRaw", True)
        args_coll.append(body_argument(record.post_body))

    # domain holds the whole URL; only the port is taken apart
    string_prop(sampler, "HTTPSampler.domain", record.url)
    string_prop(sampler, "HTTPSampler.port", record.port)
    string_prop(sampler, "HTTPSampler.protocol", SAMPLER_PROTOCOL)
    string_prop(sampler, "HTTPSampler.contentEncoding")
    string_prop(sampler, "HTTPSampler.path")
    string_prop(sampler, "HTTPSampler.method", record.method)
    bool_prop(sampler, "HTTPSampler.follow_redirects", True)
    bool_prop(sampler, "HTTPSampler.auto_redirects", False)
    bool_prop(sampler, "HTTPSampler.use_keepalive", True)
    bool_prop(sampler, "HTTPSampler.DO_MULTIPART_POST", False)
    string_prop(sampler, "HTTPSampler.embedded_url_re")
    string_prop(sampler, "HTTPSampler.connect_timeout")
    string_prop(sampler, "HTTPSampler.response_timeout")
    string_prop(sampler, "HTTPSampler.implementation", SAMPLER_IMPLEMENTATION)
    bool_prop(sampler, "HTTPSampler.monitor", False)
    string_prop(sampler, "HTTPSampler.embedded_url_regex")
    return sampler


def cookie_element(cookie: Cookie) -> etree._Element:
    elem = etree.Element(
        "elementProp",
        name=xml_text(cookie.name),
        elementType="Cookie",
        guiclass="CookiePanel",
        testclass="Cookie",
        testname=xml_text(cookie.name),
        enabled="true"
    )
    string_prop(elem, "Cookie.name", cookie.name)
    string_prop(elem, "Cookie.value", cookie.value)
    string_prop(elem, "Cookie.domain")
    string_prop(elem, "Cookie.path")
    bool_prop(elem, "Cookie.secure", False)
    long_prop(elem, "Cookie.expires", 0)
    bool_prop(elem, "Cookie.path_spec", True)
    bool_prop(elem, "Cookie.domain_spec", False)
    return elem


def cookie_manager(cookies: Iterable[Cookie]) -> etree._Element:
    manager = etree.Element(
        "CookieManager",
        guiclass="CookiePanel",
        testclass="CookieManager",
        testname="HTTP Cookie Manager",
        enabled="true"
    )
    coll = etree.SubElement(manager, "collectionProp", name="CookieManager.cookies")
    for cookie in cookies:
        coll.append(cookie_element(cookie))
    return manager


def header_element(name: str, value: str) -> etree._Element:
    elem = etree.Element("elementProp", name="", elementType="Header")
    string_prop(elem, "Header.name", name)
    string_prop(elem, "Header.value", value)
    return elem


def header_manager(headers: Iterable[Tuple[str, str]]) -> etree._Element:
    manager = etree.Element(
        "HeaderManager",
        guiclass="HeaderPanel",
        testclass="HeaderManager",
        testname="HTTP Header Manager",
        enabled="true"
    )
    coll = etree.SubElement(manager, "collectionProp", name="HeaderManager.headers")
    for name, value in headers:
        coll.append(header_element(name, value))
    return manager


def append_sampler(doc: JmxDocument, record: RequestRecord) -> etree._Element:
    """Append the sampler subtree for ``record`` and return its wrapper.

    Headers are split before anything is attached, so a malformed header
    leaves ``doc`` untouched.
    """
    headers = [split_header(h) for h in record.headers]

    wrapper = etree.Element("hashTree")
    wrapper.append(http_sampler(record))
    sampler_ht = etree.SubElement(wrapper, "hashTree")
    sampler_ht.append(cookie_manager(record.cookies))
    etree.SubElement(sampler_ht, "hashTree")
    if headers:
        sampler_ht.append(header_manager(headers))
        etree.SubElement(sampler_ht, "hashTree")

    doc.container.append(wrapper)
    return wrapper

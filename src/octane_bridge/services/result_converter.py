"""
Test report conversion
JUnit and Gherkin reports to the Octane test result document
"""

import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional

from ..shared.utils import now_millis, to_epoch_millis

PASSED = "Passed"
FAILED = "Failed"
SKIPPED = "Skipped"


def _result_root(server_id: str, job_id: str, build_id: str) -> ET.Element:
    root = ET.Element("test_result")
    ET.SubElement(root, "build", {"server_id": server_id, "job_id": job_id, "build_id": build_id})
    return root


def _to_string(root: ET.Element) -> str:
    return ET.tostring(root, encoding="unicode")


def _test_suites(root: ET.Element) -> List[ET.Element]:
    if root.tag == "testsuite":
        return [root]
    return root.findall(".//testsuite")


def _suite_start(suite: ET.Element) -> int:
    timestamp = suite.get("timestamp")
    if timestamp:
        try:
            started = to_epoch_millis(timestamp)
            if started is not None:
                return started
        except ValueError:
            pass
    return now_millis()


def _seconds_to_millis(value: Optional[str]) -> int:
    try:
        return int(round(float(value or 0) * 1000))
    except ValueError:
        return 0


def _int(value: Optional[str]) -> int:
    try:
        return int(float(value or 0))
    except ValueError:
        return 0


def _split_class_name(class_name: str):
    if "." not in class_name:
        return "", class_name
    package, _, simple_name = class_name.rpartition(".")
    return package, simple_name


def convert_junit_xml(content: str, server_id: str, job_id: str, build_id: str) -> str:
    """Convert a JUnit report (<testsuites> or a single <testsuite>)"""
    report = ET.fromstring(content)
    result = _result_root(server_id, job_id, build_id)
    test_runs = ET.SubElement(result, "test_runs")

    for suite in _test_suites(report):
        started = _suite_start(suite)
        for test_case in suite.findall("testcase"):
            package, class_name = _split_class_name(test_case.get("classname", ""))

            failure = test_case.find("failure")
            if failure is None:
                failure = test_case.find("error")

            if failure is not None:
                status = FAILED
            elif test_case.find("skipped") is not None:
                status = SKIPPED
            else:
                status = PASSED

            test_run = ET.SubElement(test_runs, "test_run", {
                "module": suite.get("package", ""),
                "package": package,
                "class": class_name,
                "name": test_case.get("name", ""),
                "duration": str(_seconds_to_millis(test_case.get("time"))),
                "status": status,
                "started": str(started),
            })

            if failure is not None:
                error = ET.SubElement(test_run, "error", {
                    "type": failure.get("type", ""),
                    "message": failure.get("message", ""),
                })
                error.text = failure.text or ""

    return _to_string(result)


def _feature_status(statuses: Iterable[str]) -> str:
    statuses = [status.lower() for status in statuses]
    if any(status == "failed" for status in statuses):
        return FAILED
    if statuses and all(status == "skipped" for status in statuses):
        return SKIPPED
    return PASSED


def convert_gherkin_xml(content: str, server_id: str, job_id: str, build_id: str) -> str:
    """Wrap every <feature> of a Gherkin report in a gherkin_test_run"""
    report = ET.fromstring(content)
    result = _result_root(server_id, job_id, build_id)
    test_runs = ET.SubElement(result, "test_runs")

    features = [report] if report.tag == "feature" else report.findall(".//feature")
    for feature in features:
        steps = feature.findall(".//step")
        duration = sum(_int(step.get("duration")) for step in steps)

        gherkin_test_run = ET.SubElement(test_runs, "gherkin_test_run", {
            "name": feature.get("name", ""),
            "duration": str(duration),
            "status": _feature_status(step.get("status", "") for step in steps),
        })
        gherkin_test_run.append(feature)

    return _to_string(result)

from pathlib import Path

import pytest

from cpreadme import PolicyDocument, ReadmeParser


SAMPLE_README = """<!DOCTYPE html>
<html>
<head>
<title>CyberPatriot Windows 10 README</title>
</head>
<body>
<h1>Round 1 &amp; Practice: Windows 10</h1>

<h2>Competition Scenario</h2>
<p>You are the new IT administrator for Aperture Science. The company workstation is used for research and must stay online for the scoring engine.</p>

<h2>Authorized Administrators and Users</h2>
<pre>
<b>Authorized Administrators:</b>
cjohnson (you)
	password: Ch3ll!Test
glados
	password: P0rt@l2Cake
<b>Authorized Users:</b>
wheatley
atlas
pbody
</pre>

<h2>Critical Services</h2>
<ul>
<li>Windows Event Log</li>
<li>Print Spooler</li>
</ul>

<h2>Company Policy</h2>
<p>All employees need access to the latest stable version of GIMP, Inkscape, and Tiled for company use. The default web browser for all users should be the latest stable version of Firefox.</p>
<p>Company policy is to never let users install games or peer-to-peer software on work machines.</p>
<p>A new employee has been hired. Create a new user account named chell for this employee.</p>
<p>Make a new group called Testers and add the following users to the Testers group: wheatley, atlas and pbody.</p>
<p>The Telnet service should be disabled.</p>
<p>Do not stop or disable the CCS Client service or process.</p>
<p>Please ensure the firewall is turned on for all network profiles.</p>
<p>Remove all prohibited media files from user directories.</p>

<h2>Competition Guidelines</h2>
<ul>
<li>Do not stop or disable the CCS Client service.</li>
<li>Authorized administrator passwords were correct at the start of the competition.</li>
</ul>
</body>
</html>
"""


@pytest.fixture
def parser() -> ReadmeParser:
    return ReadmeParser()


@pytest.fixture
def sample_html() -> str:
    return SAMPLE_README


@pytest.fixture
def readme_path(tmp_path: Path) -> Path:
    path = tmp_path / "README.html"
    path.write_text(SAMPLE_README, encoding="utf-8")
    return path


@pytest.fixture
def sample_document(parser: ReadmeParser, sample_html: str) -> PolicyDocument:
    return parser.parse_text(sample_html)

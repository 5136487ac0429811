import pytest

from cpreadme import ITEM_DETECTORS, ActionableItem, ActionItemType, PolicyDocument, ReadmeParser


def items_for(parser: ReadmeParser, *paragraphs: str) -> list[ActionableItem]:
    markup = "".join(f"<p>{p}</p>" for p in paragraphs)
    return parser.parse_text(markup).actionable_items


class TestDetectorTable:
    def test_fixed_order(self) -> None:
        assert [d.name for d in ITEM_DETECTORS] == [
            "user-creation",
            "group-management",
            "service",
            "software",
            "security-policy",
            "file-operation",
        ]

    def test_sample_items(self, sample_document: PolicyDocument) -> None:
        assert [(i.type, i.description) for i in sample_document.actionable_items] == [
            (ActionItemType.CREATE_USER, "Create user account: chell"),
            (ActionItemType.CREATE_GROUP, "Create group: Testers"),
            (ActionItemType.DISABLE_SERVICE, "Disable service: Telnet"),
            (ActionItemType.SECURITY_POLICY, "Configure Windows Firewall settings"),
            (ActionItemType.FILE_OPERATION, "Remove prohibited media files"),
        ]

    def test_raw_text_is_the_paragraph(self, sample_document: PolicyDocument) -> None:
        item = sample_document.actionable_items[2]

        assert item.raw_text == "The Telnet service should be disabled."
        assert item.details == {"ServiceName": "Telnet"}

    def test_no_duplicate_items(self, parser: ReadmeParser) -> None:
        items = items_for(parser, "Disable the Telnet service.", "Disable the Telnet service.")

        assert [i.description for i in items] == ["Disable service: Telnet"]

    def test_short_paragraphs_are_skipped(self) -> None:
        parser = ReadmeParser(min_paragraph_length=100)
        result = parser.parse_text("<p>Disable the Telnet service.</p>")

        assert result.actionable_items == []
        assert result.prohibited_services == ["Telnet"]


class TestUserCreationItems:
    def test_new_user_named(self, parser: ReadmeParser) -> None:
        result = parser.parse_text("<p>Please add a new user named gordon to the machine.</p>")

        assert [i.details for i in result.actionable_items] == [{"Username": "gordon"}]
        assert result.users_to_create == ["gordon"]

    def test_common_word_is_not_a_username(self, parser: ReadmeParser) -> None:
        assert items_for(parser, "Create a new user account named employee.") == []


class TestGroupItems:
    def test_create_group(self, parser: ReadmeParser) -> None:
        items = items_for(parser, "Create a group called Auditors.")

        assert [(i.type, i.details) for i in items] == [
            (ActionItemType.CREATE_GROUP, {"GroupName": "Auditors"})
        ]

    def test_add_to_group(self, parser: ReadmeParser) -> None:
        items = items_for(parser, "Add bob to the Administrators group.")

        assert len(items) == 1
        assert items[0].type is ActionItemType.ADD_USER_TO_GROUP
        assert items[0].description == "Add bob to group Administrators"
        assert items[0].details == {"Username": "bob", "GroupName": "Administrators"}

    def test_remove_from_group(self, parser: ReadmeParser) -> None:
        items = items_for(parser, "Remove alice from the Administrators group.")

        assert len(items) == 1
        assert items[0].type is ActionItemType.REMOVE_USER_FROM_GROUP
        assert items[0].description == "Remove alice from group Administrators"

    def test_group_text_without_entity_yields_nothing(self, parser: ReadmeParser) -> None:
        assert items_for(parser, "Make sure bob is a member of the Backup Operators group.") == []


class TestServiceItems:
    def test_must_be_running(self, parser: ReadmeParser) -> None:
        items = items_for(parser, "The Windows Update service must be running at all times.")

        assert [(i.type, i.description) for i in items] == [
            (ActionItemType.ENABLE_SERVICE, "Enable/ensure running: Windows Update")
        ]

    def test_warning_produces_no_item(self, parser: ReadmeParser) -> None:
        result = parser.parse_text("<p>Do not stop the DHCP Client service.</p>")

        assert result.actionable_items == []
        assert result.critical_services == ["DHCP Client"]


class TestSoftwareItems:
    def test_install(self, parser: ReadmeParser) -> None:
        items = items_for(parser, "The network team needs the Wireshark application. Please install Wireshark.")

        assert [(i.type, i.details) for i in items] == [
            (ActionItemType.INSTALL_SOFTWARE, {"SoftwareName": "Wireshark"})
        ]

    def test_uninstall(self, parser: ReadmeParser) -> None:
        items = items_for(parser, "Uninstall CCleaner, this program is not approved.")

        assert [(i.type, i.description) for i in items] == [
            (ActionItemType.REMOVE_SOFTWARE, "Remove software: CCleaner")
        ]

    def test_lowercase_names_are_not_products(self, parser: ReadmeParser) -> None:
        assert items_for(parser, "Please install the wireshark application now.") == []

    def test_user_text_is_not_software(self, parser: ReadmeParser) -> None:
        assert items_for(parser, "Install the Chrome application for every user.") == []


class TestSecurityPolicyItems:
    @pytest.mark.parametrize(
        "text,category,description",
        [
            (
                "Password complexity must be required for all accounts.",
                "Password Policy",
                "Configure password complexity requirements",
            ),
            ("Please ensure the firewall is turned on.", "Firewall", "Configure Windows Firewall settings"),
            ("The audit policy should log every failed logon.", "Audit Policy", "Configure audit policy settings"),
            ("Turn on the Action Center notifications.", "Action Center", "Configure Windows Action Center"),
            ("Windows Defender must stay enabled.", "Antivirus", "Configure Windows Defender/Antivirus"),
            ("Review the local security settings.", "General", "Configure local security policy settings"),
        ],
    )
    def test_categories(self, parser: ReadmeParser, text: str, category: str, description: str) -> None:
        items = items_for(parser, text)

        assert len(items) == 1
        assert items[0].type is ActionItemType.SECURITY_POLICY
        assert items[0].details == {"Category": category}
        assert items[0].description == description


class TestFileOperationItems:
    def test_hacking_tools(self, parser: ReadmeParser) -> None:
        items = items_for(parser, "Delete any hacking tools found in the files of the Public folder.")

        assert [(i.type, i.details) for i in items] == [
            (ActionItemType.FILE_OPERATION, {"FileType": "Unauthorized software/tools"})
        ]

    def test_do_not_remove(self, parser: ReadmeParser) -> None:
        assert items_for(parser, "Do not remove the files in the Scoring folder.") == []

    def test_unclassified_files(self, parser: ReadmeParser) -> None:
        assert items_for(parser, "Delete old log files from the Temp folder.") == []

from widgetizer.models import LinkValue, MediaRecord, SettingDefinition


def test_setting_definition_holds_data():
    assert SettingDefinition.from_dict({"id": "a", "type": "text"}).holds_data
    assert not SettingDefinition.from_dict({"type": "header", "label": "Section"}).holds_data
    assert not SettingDefinition.from_dict({"id": "h", "type": "header"}).holds_data
    assert not SettingDefinition.from_dict({"type": "text"}).holds_data


def test_link_value_round_trip_keeps_extra_keys():
    link = LinkValue.from_dict({"href": "a.html", "text": "A", "pageUuid": "u1", "rel": "nofollow"})
    assert link.target == "_self"
    assert link.to_dict() == {"rel": "nofollow", "href": "a.html", "text": "A", "target": "_self", "pageUuid": "u1"}
    assert LinkValue.cleared().to_dict() == {"href": "", "text": "", "target": "_self"}


def test_media_record_usage():
    record = MediaRecord.from_dict(
        {"id": "m", "filename": "a.jpg", "path": "/uploads/images/a.jpg", "usedIn": ["p1", "p1", 3, "p2"], "width": 10}
    )
    assert record.used_in == ["p1", "p2"]
    assert record.extra == {"width": 10}
    assert record.add_usage("p3") is True
    assert record.add_usage("p3") is False
    assert record.remove_usage("p1") is True
    assert record.remove_usage("p1") is False
    assert record.to_dict()["usedIn"] == ["p2", "p3"]
    assert record.to_dict()["width"] == 10

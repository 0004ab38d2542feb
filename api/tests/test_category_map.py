from blogfeed.services.categories import CategoryMap


def test_from_json_builds_bidirectional_lookup() -> None:
    categories = CategoryMap.from_json('{"2": "General", "1": "Cat", "3": "Inspiration"}')

    assert categories.names == ["Cat", "General", "Inspiration"]
    assert categories.resolve(3) == "Inspiration"
    assert categories.resolve("general") == 2
    assert categories.name_for("1") == "Cat"


def test_unknown_label_falls_back_to_first_category() -> None:
    categories = CategoryMap.from_rows([{"id": 5, "name": "Skills"}, {"id": 6, "name": "Mindset"}])

    assert categories.id_for("Mindset") == 6
    assert categories.id_for("Health") == 5
    assert categories.id_for(None) == 5


def test_invalid_configuration_yields_empty_map() -> None:
    assert len(CategoryMap.from_json("not json")) == 0
    assert len(CategoryMap.from_json('["Cat"]')) == 0
    assert CategoryMap.from_json(None).id_for("Cat") is None


def test_from_rows_skips_malformed_rows() -> None:
    categories = CategoryMap.from_rows([{"id": "x", "name": "Bad"}, {"id": 2, "name": "  "}, {"id": 3, "name": "Ok"}])

    assert categories.names == ["Ok"]

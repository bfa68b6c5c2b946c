from conftest import failed_result, leaf, make_result
from helm_schema.chart import Dependency
from helm_schema.compose import (
    CONDITION_DESCRIPTION,
    collect_condition_patches,
    compose,
    compose_dependencies,
    condition_paths,
    patch_condition,
)
from helm_schema.schema import Schema


def test_condition_paths():
    assert condition_paths(Dependency(name="db", condition="db.enabled")) == [["db", "enabled"]]
    assert condition_paths(Dependency(name="db", alias="database", condition="database.enabled")) == [
        ["db", "enabled"]
    ]
    assert condition_paths(Dependency(name="db", condition="db.a, global.db.enabled")) == [
        ["db", "a"],
        ["global", "db", "enabled"],
    ]
    assert condition_paths(Dependency(name="db", condition="enabled")) == []
    assert condition_paths(Dependency(name="db", condition="db..x")) == []
    assert condition_paths(Dependency(name="db")) == []


def test_collect_condition_patches_skips_filtered_and_failed():
    results = [
        make_result("app", dependencies=[
            {"name": "db", "condition": "db.enabled"},
            {"name": "cache", "condition": "cache.enabled"},
        ]),
        make_result("web", dependencies=[{"name": "db", "condition": "db.enabled"}]),
        failed_result("charts/broken/Chart.yaml"),
    ]
    assert collect_condition_patches(results, {"db"}) == {"db": [["enabled"]]}


def test_patch_condition_creates_missing_nodes():
    schema = Schema(type=["object"])
    patch_condition(schema, ["features", "db", "enabled"], "db")
    features = schema.properties["features"]
    assert features.type == ["object"]
    enabled = features.properties["db"].properties["enabled"]
    assert enabled.type == ["boolean"]
    assert enabled.description == CONDITION_DESCRIPTION


def test_patch_condition_keeps_existing_nodes():
    existing = leaf("boolean", title="enabled", description="Turn it on")
    schema = Schema(properties={"enabled": existing})
    patch_condition(schema, ["enabled"])
    assert schema.properties["enabled"] is existing
    assert existing.description == "Turn it on"


def test_compose_embeds_dependency_under_alias():
    app = make_result("app", dependencies=[{"name": "db", "alias": "database", "condition": "database.enabled"}])
    db = make_result("db", description="A database", properties={"port": leaf("integer", title="port")})
    db.schema.required = ["port"]

    compose([db, app])

    database = app.schema.properties["database"]
    assert database.type == ["object"]
    assert database.title == "db"
    assert database.description == "A database"
    assert database.properties["port"].type == ["integer"]
    assert database.properties["enabled"].type == ["boolean"]
    assert database.required == []
    # The dependency's own schema keeps its constraints
    assert db.schema.required == ["port"]
    assert "enabled" in db.schema.properties


def test_compose_copies_dependency_schemas():
    db = make_result("db", properties={"port": leaf("integer")})
    app = make_result("app", dependencies=[{"name": "db"}])
    web = make_result("web", dependencies=[{"name": "db"}])
    compose([db, app, web])
    app.schema.properties["db"].properties["port"].title = "changed"
    assert web.schema.properties["db"].properties["port"].title == ""
    assert db.schema.properties["port"].title == ""


def test_compose_is_transitive_in_sorted_order():
    base = make_result("base", properties={"x": leaf("string")})
    mid = make_result("mid", dependencies=[{"name": "base"}])
    top = make_result("top", dependencies=[{"name": "mid"}])
    compose([base, mid, top])
    assert top.schema.properties["mid"].properties["base"].properties["x"].type == ["string"]


def test_nested_required_is_cleared_in_embedded_copy():
    db = make_result("db", properties={"auth": Schema(type=["object"], required=["password"])})
    app = make_result("app", dependencies=[{"name": "db"}])
    compose([db, app])
    assert app.schema.properties["db"].properties["auth"].required == []
    assert db.schema.properties["auth"].required == ["password"]


def test_missing_dependency_leaves_parent_untouched():
    app = make_result("app", dependencies=[{"name": "external"}, {"name": ""}])
    compose_dependencies([app])
    assert app.schema.properties == {}


def test_dependency_after_parent_is_not_found():
    app = make_result("app", dependencies=[{"name": "db"}])
    db = make_result("db", properties={"port": leaf("integer")})
    compose_dependencies([app, db])
    assert "db" not in app.schema.properties


def test_filter_limits_composition():
    db = make_result("db")
    cache = make_result("cache")
    app = make_result("app", dependencies=[{"name": "db"}, {"name": "cache"}])
    compose([db, cache, app], {"db"})
    assert set(app.schema.properties) == {"db"}


def test_failed_results_are_skipped():
    broken = failed_result("charts/db/Chart.yaml")
    app = make_result("app", dependencies=[{"name": "db"}])
    compose([broken, app])
    assert app.schema.properties == {}


def test_last_dependency_wins_on_shared_alias():
    first = make_result("a", properties={"x": leaf("string")})
    second = make_result("b", properties={"y": leaf("string")})
    app = make_result("app", dependencies=[{"name": "a", "alias": "dep"}, {"name": "b", "alias": "dep"}])
    compose([first, second, app])
    assert set(app.schema.properties) == {"dep"}
    assert set(app.schema.properties["dep"].properties) == {"y"}
    assert app.schema.properties["dep"].title == "b"


def test_dependency_replaces_parent_value_of_same_name():
    db = make_result("db", properties={"port": leaf("integer")})
    app = make_result("app", dependencies=[{"name": "db"}], properties={
        "db": Schema(type=["object"], title="db", properties={"host": leaf("string")}),
        "name": leaf("string"),
    })
    compose([db, app])
    assert set(app.schema.properties["db"].properties) == {"port"}
    assert app.schema.properties["name"].type == ["string"]

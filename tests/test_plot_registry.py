"""Tests for the in-memory plot registry."""

from __future__ import annotations

import pytest
from shapely.geometry import box

from plotdesigner.core.plots import (
    TREATMENT_CATALOG,
    Plot,
    PlotRegistry,
    RegistryStatus,
    treatment_by_id,
)


def _plot(plot_id: str, offset: float = 0.0) -> Plot:
    return Plot(id=plot_id, name=f"Plot {plot_id}", footprint=box(offset, 0, offset + 1, 1))


def test_create_list_preserves_insertion_order() -> None:
    registry = PlotRegistry()
    for plot_id in ("b", "a", "c"):
        registry.create(_plot(plot_id))

    assert [plot.id for plot in registry.list()] == ["b", "a", "c"]
    assert len(registry) == 3
    assert "a" in registry
    assert registry.get("missing") is None


def test_create_rejects_duplicate_id() -> None:
    registry = PlotRegistry()
    registry.create(_plot("a"))
    with pytest.raises(ValueError):
        registry.create(_plot("a"))


def test_replace_all_discards_previous_plots() -> None:
    registry = PlotRegistry()
    registry.create(_plot("old"))
    registry.replace_all([_plot("x"), _plot("y")])
    assert [plot.id for plot in registry.list()] == ["x", "y"]


def test_replace_all_with_duplicates_keeps_previous_state() -> None:
    registry = PlotRegistry()
    registry.create(_plot("old"))
    with pytest.raises(ValueError):
        registry.replace_all([_plot("x"), _plot("x")])
    assert [plot.id for plot in registry.list()] == ["old"]


def test_update_patches_fields() -> None:
    registry = PlotRegistry()
    registry.create(_plot("a"))
    new_footprint = box(5, 5, 6, 6)

    status = registry.update("a", footprint=new_footprint, treatment="2")

    assert status == RegistryStatus.OK
    updated = registry.get("a")
    assert updated.footprint.equals(new_footprint)
    assert updated.treatment == "2"
    assert updated.name == "Plot a"


def test_update_unknown_id_returns_not_found() -> None:
    registry = PlotRegistry()
    assert registry.update("ghost", treatment="1") == RegistryStatus.NOT_FOUND


def test_update_rejects_id_and_unknown_fields() -> None:
    registry = PlotRegistry()
    registry.create(_plot("a"))
    with pytest.raises(ValueError):
        registry.update("a", id="b")
    with pytest.raises(ValueError):
        registry.update("a", colour="red")


def test_delete_missing_plot_is_not_found() -> None:
    registry = PlotRegistry()
    registry.create(_plot("a"))

    assert registry.delete("a") == RegistryStatus.OK
    assert registry.delete("a") == RegistryStatus.NOT_FOUND
    assert len(registry) == 0


def test_delete_many_reports_status_per_id() -> None:
    registry = PlotRegistry()
    registry.create(_plot("a"))
    registry.create(_plot("b"))

    statuses = registry.delete_many(["a", "ghost"])

    assert statuses == {"a": RegistryStatus.OK, "ghost": RegistryStatus.NOT_FOUND}
    assert [plot.id for plot in registry.list()] == ["b"]


def test_to_geodataframe_columns_and_crs() -> None:
    registry = PlotRegistry()
    registry.create(_plot("a"))
    registry.create(_plot("b", offset=1))
    registry.update("b", plot_number="P02", repetition_label="R1")

    gdf = registry.to_geodataframe()

    assert list(gdf.columns) == [
        "id", "name", "treatment", "repetition_label", "plot_number", "geometry"
    ]
    assert gdf.crs.to_epsg() == 4326
    assert gdf.loc[1, "plot_number"] == "P02"
    assert gdf.loc[1, "repetition_label"] == "R1"


def test_treatment_catalog_lookup() -> None:
    assert [t.name for t in TREATMENT_CATALOG] == [
        "Control", "Fertilizer A", "Fertilizer B", "Irrigation A", "Irrigation B"
    ]
    assert treatment_by_id("3").display_color == "#3b82f6"
    assert treatment_by_id("99") is None
    assert treatment_by_id(None) is None

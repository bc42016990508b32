"""Unit tests for effective setup resolution and setup diffs."""

from builders import channel
from stagepilot.models import InputUpdate, MonitoringPatch, MonitoringPreset, MonitorType, MusicianSetupPreset
from stagepilot.preset_override import create_patch
from stagepilot.setup_resolver import (
    compute_setup_diff,
    monitoring_from_entity,
    order_inputs,
    resolve_effective_musician_setup,
)


def _bass_default() -> MusicianSetupPreset:
    return MusicianSetupPreset(
        inputs=(
            channel("bass_synth", "Bass synth", "bass"),
            channel("el_bass_mic", "Bass mic", "bass"),
            channel("el_bass_xlr_amp", "Bass", "bass"),
        ),
        monitoring=MonitoringPreset(type="iem_wired", mode="mono"),
    )


def test_bass_inputs_are_role_ordered() -> None:
    ordered = order_inputs(_bass_default().inputs, "bass")
    assert [item.key for item in ordered] == ["el_bass_xlr_amp", "el_bass_mic", "bass_synth"]


def test_drum_inputs_use_drum_table() -> None:
    inputs = [channel("oh_l", group="drums"), channel("kick_out", group="drums"), channel("hihat", group="drums")]
    assert [item.key for item in order_inputs(inputs, "drums")] == ["kick_out", "hihat", "oh_l"]


def test_musician_defaults_win_over_band_defaults() -> None:
    band_defaults = MusicianSetupPreset(inputs=(channel("gtr", "Band guitar", "guitar"),))
    musician_defaults = MusicianSetupPreset(inputs=(channel("gtr_l", "Guitar L", "guitar"),))
    setup = resolve_effective_musician_setup(
        role="guitar", musician_defaults=musician_defaults, band_defaults=band_defaults
    )
    assert [item.key for item in setup.effective_inputs] == ["gtr_l"]


def test_band_defaults_used_when_musician_has_none() -> None:
    band_defaults = MusicianSetupPreset(inputs=(channel("gtr", "Band guitar", "guitar"),))
    setup = resolve_effective_musician_setup(role="guitar", band_defaults=band_defaults)
    assert [item.key for item in setup.effective_inputs] == ["gtr"]


def test_fallback_is_empty_wedge() -> None:
    setup = resolve_effective_musician_setup(role="keys")
    assert setup.effective_inputs == ()
    assert setup.effective_monitoring.type == "wedge"


def test_no_override_tags_everything_default_unchanged() -> None:
    setup = resolve_effective_musician_setup(role="bass", musician_defaults=_bass_default())
    assert {(diff.origin, diff.change_type) for diff in setup.diff_meta.inputs} == {("default", "unchanged")}
    assert {(diff.origin, diff.change_type) for diff in setup.diff_meta.monitoring} == {("default", "unchanged")}


def test_diff_tags_removed_added_and_monitoring() -> None:
    patch = create_patch(
        remove_keys=["bass_synth"],
        add=[channel("el_bass_di", "Bass DI", "bass")],
        monitoring=MonitoringPatch(mode="stereo"),
    )
    setup = resolve_effective_musician_setup(role="bass", musician_defaults=_bass_default(), event_override=patch)

    tags = {diff.key: (diff.origin, diff.change_type) for diff in setup.diff_meta.inputs}
    assert tags["bass_synth"] == ("override", "removed")
    assert tags["el_bass_di"] == ("override", "added")
    assert tags["el_bass_xlr_amp"] == ("default", "unchanged")

    monitoring = {diff.field: diff.change_type for diff in setup.diff_meta.monitoring}
    assert monitoring == {"type": "unchanged", "mode": "changed", "mix_count": "unchanged"}


def test_renamed_input_uses_effective_label() -> None:
    diff = compute_setup_diff(
        [channel("gtr_l", "Guitar L")],
        [channel("gtr_l", "Main guitar")],
        create_patch(update=[InputUpdate(key="gtr_l", label="Main guitar")]),
    )
    assert diff.inputs[0].label == "Main guitar"
    assert diff.inputs[0].change_type == "unchanged"


def test_resolving_without_override_restores_default() -> None:
    default = _bass_default()
    overridden = resolve_effective_musician_setup(
        role="bass", musician_defaults=default, event_override=create_patch(remove_keys=["el_bass_mic"])
    )
    plain = resolve_effective_musician_setup(role="bass", musician_defaults=default)
    assert len(overridden.effective_inputs) == 2
    assert plain.effective_inputs == plain.default_preset.inputs
    assert plain.effective_monitoring == default.monitoring
    assert plain.patch is None


def test_noop_override_is_dropped() -> None:
    patch = create_patch(monitoring=MonitoringPatch(mode="mono"))
    setup = resolve_effective_musician_setup(role="bass", musician_defaults=_bass_default(), event_override=patch)
    assert setup.patch is None


def test_monitoring_from_entity() -> None:
    wireless = monitoring_from_entity(MonitorType(id="iem_x", label="IEM", mode="stereo", wireless=True))
    wired = monitoring_from_entity(MonitorType(id="iem_wired_mono", label="IEM wired"))
    wedge = monitoring_from_entity(MonitorType(id="wedge", label="Wedge"))
    assert (wireless.type, wireless.mode, wireless.monitor_ref) == ("iem_wireless", "stereo", "iem_x")
    assert wired.type == "iem_wired"
    assert wedge.type == "wedge"

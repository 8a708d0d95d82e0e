"""Tests for the editor controller and the relink selection protocol."""

import random

import pytest

from penrove.config import EditorConfig, EditorFeatures
from penrove.controller import EditorController, RelinkState
from penrove.errors import FailureKind
from penrove.model import Category, check_invariants
from penrove.traversal import children_index


class TestScenarios:
    """End-to-end command sequences."""

    def test_first_child_centred(self, controller):
        result = controller.add_child(1)
        snapshot = result.snapshot
        assert result.ok
        assert snapshot.ids == [1, 2]
        assert snapshot.node(2).parent_id == 1
        assert snapshot.node(2).center_x == snapshot.node(1).center_x

    def test_second_child_side_by_side(self, controller):
        controller.add_child(1)
        snapshot = controller.add_child(1).snapshot
        root, left, right = snapshot.node(1), snapshot.node(2), snapshot.node(3)
        gap = controller.config.layout.horizontal_gap
        assert right.x - (left.x + left.width) == gap
        assert (left.center_x + right.center_x) / 2 == root.center_x

    def test_delete_recentres_remaining_child(self, controller):
        controller.add_child(1)
        controller.add_child(1)
        snapshot = controller.delete_subtree(2).snapshot
        assert snapshot.ids == [1, 3]
        assert snapshot.node(3).center_x == snapshot.node(1).center_x

    def test_relink_chain_to_root(self, chain):
        snapshot = chain.relink(3, 1).snapshot
        assert [c.id for c in children_index(snapshot.nodes)[1]] == [2, 3]

    def test_relink_into_descendant_rejected(self, chain):
        before = chain.get_snapshot()
        result = chain.relink(2, 3)
        assert result.kind is FailureKind.INVARIANT_VIOLATION
        assert chain.get_snapshot() is before

    def test_delete_root_rejected(self, controller):
        before = controller.get_snapshot()
        result = controller.delete_subtree(1)
        assert result.kind is FailureKind.INVARIANT_VIOLATION
        assert controller.get_snapshot() is before


class TestIdentifiers:
    def test_ids_never_reused_after_delete(self, controller):
        controller.add_child(1)
        controller.add_child(1)
        controller.delete_subtree(3)
        result = controller.add_child(1)
        assert result.snapshot.ids == [1, 2, 4]
        assert result.snapshot.node(4).label == "Component #4"

    def test_custom_root_id(self):
        controller = EditorController(root_id=100)
        assert controller.get_snapshot().root.id == 100
        assert controller.add_child(100).snapshot.ids == [100, 101]


class TestInvariantPreservation:
    """Random command sequences keep the tree valid."""

    @pytest.mark.parametrize("seed", range(6))
    def test_random_commands(self, seed):
        rng = random.Random(seed)
        controller = EditorController()
        seen = set()
        for _ in range(150):
            snapshot = controller.get_snapshot()
            ids = snapshot.ids
            op = rng.choice(["add", "add", "delete", "relink", "rename"])
            if op == "add":
                result = controller.add_child(rng.choice(ids))
                new_ids = set(result.snapshot.ids) - set(ids)
                assert len(new_ids) == 1
                assert not new_ids & seen
            elif op == "delete":
                controller.delete_subtree(rng.choice(ids))
            elif op == "relink":
                controller.relink(rng.choice(ids), rng.choice(ids))
            else:
                controller.rename(rng.choice(ids), f"n{rng.random():.3f}")

            snapshot = controller.get_snapshot()
            seen.update(snapshot.ids)
            check_invariants(snapshot.nodes)
            assert len(snapshot.connectors) == len(snapshot) - 1
            assert snapshot.root.id == 1


class TestEditing:
    def test_rename_and_retype(self, controller):
        controller.add_child(1)
        assert controller.rename(2, "Valve").snapshot.node(2).label == "Valve"
        assert controller.retype(2, Category.PART).snapshot.node(2).category is Category.PART

    def test_edit_node_applies_both(self, controller):
        controller.add_child(1)
        result = controller.edit_node(2, label="Rotor", category="Subsystem")
        node = result.snapshot.node(2)
        assert (node.label, node.category) == ("Rotor", Category.SUBSYSTEM)
        assert controller.undo_manager.undo_description.startswith("Rename node 2")

    def test_edit_node_invalid_category_changes_nothing(self, controller):
        controller.add_child(1)
        before = controller.get_snapshot()
        result = controller.edit_node(2, label="Rotor", category="Gizmo")
        assert result.kind is FailureKind.INVALID_VALUE
        assert controller.get_snapshot() is before

    def test_edit_node_unknown_id(self, controller):
        before = controller.get_snapshot()
        result = controller.edit_node(999)
        assert result.kind is FailureKind.INVALID_REFERENCE
        assert controller.get_snapshot() is before
        assert controller.edit_node(1).ok

    def test_rename_does_not_move_nodes(self, controller):
        controller.add_child(1)
        before = controller.get_snapshot()
        after = controller.rename(2, "A much longer label than before").snapshot
        assert [n.position for n in after.nodes] == [n.position for n in before.nodes]


class TestFeatureFlags:
    def test_relink_disabled(self):
        controller = EditorController(EditorConfig(features=EditorFeatures(relink=False)))
        controller.add_child(1)
        controller.add_child(2)
        assert controller.relink(3, 1).kind is FailureKind.FEATURE_DISABLED
        assert controller.enter_relink_mode().kind is FailureKind.FEATURE_DISABLED
        assert controller.relink_state is RelinkState.IDLE

    def test_categories_disabled(self):
        controller = EditorController(EditorConfig(features=EditorFeatures(categories=False)))
        assert controller.retype(1, "Part").kind is FailureKind.FEATURE_DISABLED
        assert controller.edit_node(1, category="Part").kind is FailureKind.FEATURE_DISABLED
        assert controller.rename(1, "Still allowed").ok


class TestRelinkProtocol:
    """Idle -> AwaitingSource -> AwaitingTarget -> Idle."""

    def test_full_cycle(self, chain):
        chain.enter_relink_mode()
        assert chain.relink_state is RelinkState.AWAITING_SOURCE
        chain.select_for_relink(3)
        assert chain.relink_state is RelinkState.AWAITING_TARGET
        assert chain.relink_source == 3
        result = chain.select_for_relink(1)
        assert result.ok
        assert result.snapshot.node(3).parent_id == 1
        assert chain.relink_state is RelinkState.IDLE
        assert chain.relink_source is None

    def test_root_cannot_be_source(self, chain):
        chain.enter_relink_mode()
        result = chain.select_for_relink(1)
        assert result.kind is FailureKind.INVARIANT_VIOLATION
        assert chain.relink_state is RelinkState.AWAITING_SOURCE

    def test_invalid_target_keeps_state(self, chain):
        chain.enter_relink_mode()
        chain.select_for_relink(2)
        before = chain.get_snapshot()
        for target in (2, 3, 1):
            result = chain.select_for_relink(target)
            assert not result.ok
            assert chain.relink_state is RelinkState.AWAITING_TARGET
            assert chain.relink_source == 2
        assert chain.get_snapshot() is before

    def test_select_while_idle_is_noop(self, chain):
        before = chain.get_snapshot()
        result = chain.select_for_relink(3)
        assert not result.ok
        assert chain.relink_state is RelinkState.IDLE
        assert chain.get_snapshot() is before

    def test_cancel_from_any_state(self, chain):
        chain.enter_relink_mode()
        chain.select_for_relink(3)
        chain.cancel_relink_selection()
        assert chain.relink_state is RelinkState.IDLE
        chain.enter_relink_mode()
        chain.cancel_relink_selection()
        assert chain.relink_state is RelinkState.IDLE

    def test_toggle(self, chain):
        chain.toggle_relink_mode()
        assert chain.relink_state is RelinkState.AWAITING_SOURCE
        chain.select_for_relink(3)
        chain.toggle_relink_mode()
        assert chain.relink_state is RelinkState.IDLE
        assert chain.relink_source is None

    def test_exit_leaves_tree_alone(self, chain):
        before = chain.get_snapshot()
        chain.enter_relink_mode()
        chain.select_for_relink(3)
        chain.exit_relink_mode()
        assert chain.get_snapshot() is before

    def test_deleting_selected_source_returns_to_idle(self, chain):
        chain.add_child(1)
        chain.enter_relink_mode()
        chain.select_for_relink(3)
        assert chain.delete_subtree(2).ok
        assert 3 not in chain.get_snapshot()
        assert chain.relink_state is RelinkState.IDLE
        assert chain.relink_source is None
        assert chain.valid_relink_targets() == []

    def test_deleting_elsewhere_keeps_selection(self, chain):
        chain.add_child(1)
        chain.enter_relink_mode()
        chain.select_for_relink(3)
        chain.delete_subtree(4)
        assert chain.relink_state is RelinkState.AWAITING_TARGET
        assert chain.select_for_relink(1).ok

    def test_valid_targets(self, controller):
        # 1 -> 2 -> 3, 1 -> 4
        controller.add_child(1)
        controller.add_child(2)
        controller.add_child(1)
        assert controller.valid_relink_targets() == []
        controller.enter_relink_mode()
        controller.select_for_relink(2)
        assert controller.valid_relink_targets() == [4]


class TestMeasurements:
    def test_layout_settles_once_all_measured(self, controller):
        controller.add_child(1)
        assert not controller.layout_settled
        controller.report_measurement(1, 200.0)
        assert not controller.layout_settled
        controller.report_measurements({2: 150.0})
        assert controller.layout_settled
        assert controller.get_snapshot().node(2).width == 150.0

    def test_measurement_is_not_undoable(self, controller):
        controller.add_child(1)
        controller.report_measurement(2, 250.0)
        controller.undo()
        assert controller.get_snapshot().ids == [1]
        controller.redo()
        assert controller.get_snapshot().node(2).measured_width == 250.0

    def test_bad_measurement_rejected(self, controller):
        result = controller.report_measurement(1, -5)
        assert result.kind is FailureKind.INVALID_VALUE

    @pytest.mark.parametrize("width", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_measurement_rejected(self, controller, width):
        controller.add_child(1)
        before = controller.get_snapshot()
        result = controller.report_measurement(2, width)
        assert result.kind is FailureKind.INVALID_VALUE
        assert controller.get_snapshot() is before
        assert not controller.layout_settled

    def test_snapshot_callback(self, controller):
        published = []
        controller.on_snapshot_changed = published.append
        controller.add_child(1)
        controller.delete_subtree(1)
        assert [s.ids for s in published] == [[1, 2]]

"""Tests for the interaction controller state machine."""

import pytest

from prancheta.constants import BoardConfig
from prancheta.controller import EditorState, InteractionController, parse_jersey_number
from prancheta.types import (
    ArrowItem,
    BallItem,
    BlockItem,
    FreeDrawItem,
    PlayerItem,
    Point,
    Team,
    TextAlignment,
    TextItem,
    Tool,
)


class Recorder:
    """Collects host callbacks."""

    def __init__(self):
        self.changes = []
        self.repaints = 0
        self.text_edits = []

    def on_change(self, items):
        self.changes.append(items)

    def on_repaint(self, scene):
        self.repaints += 1

    def on_text_edit(self, item):
        self.text_edits.append(item)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def controller(recorder):
    return InteractionController(
        on_change=recorder.on_change,
        on_repaint=recorder.on_repaint,
        on_text_edit=recorder.on_text_edit,
    )


def place(controller, tool, x, y):
    controller.set_tool(tool)
    controller.pointer_down(Point(x, y))
    controller.pointer_up(Point(x, y))
    return controller.items[-1]


def drag(controller, start, end, steps=20):
    controller.pointer_down(start)
    for step in range(1, steps + 1):
        t = step / steps
        controller.pointer_move(
            Point(start.x + (end.x - start.x) * t, start.y + (end.y - start.y) * t)
        )
    controller.pointer_up(end)


class TestToolbar:
    def test_defaults(self, controller):
        assert controller.tool is Tool.SELECT
        assert controller.state is EditorState.IDLE
        assert controller.items == []

    def test_set_tool_by_name(self, controller):
        assert controller.set_tool("arrow")
        assert controller.tool is Tool.ARROW

    def test_unknown_tool_ignored(self, controller, caplog):
        assert not controller.set_tool("laser")
        assert controller.tool is Tool.SELECT
        assert "laser" in caplog.text


class TestPlacement:
    def test_place_ball(self, controller, recorder):
        ball = place(controller, Tool.BALL, 100, 100)
        assert isinstance(ball, BallItem)
        assert ball.position == Point(100, 100)
        assert (ball.width, ball.height) == (20.0, 20.0)
        assert ball.selected
        assert controller.history.depth == 2
        assert len(recorder.changes) == 1

    def test_ball_scenario(self, controller):
        ball = place(controller, Tool.BALL, 100, 100)
        assert controller.scene.find_topmost_at(Point(105, 100)).id == ball.id
        assert controller.scene.find_topmost_at(Point(120, 100)) is None

    def test_players_are_numbered_per_team(self, controller):
        first = place(controller, Tool.PLAYER_BLUE, 50, 50)
        second = place(controller, Tool.PLAYER_BLUE, 150, 50)
        red = place(controller, Tool.PLAYER_RED, 250, 50)
        assert (first.number, second.number) == (1, 2)
        assert red.number == 1
        assert red.team is Team.RED
        assert red.color == "#ef4444"

    def test_new_item_becomes_only_selection(self, controller):
        place(controller, Tool.BALL, 100, 100)
        block = place(controller, Tool.BLOCK, 300, 300)
        assert isinstance(block, BlockItem)
        assert controller.scene.selected_ids == [block.id]

    def test_placement_on_existing_item_does_nothing(self, controller):
        place(controller, Tool.BALL, 100, 100)
        controller.set_tool(Tool.BLOCK)
        controller.pointer_down(Point(102, 100))
        controller.pointer_up(Point(102, 100))
        assert len(controller.items) == 1
        assert controller.history.depth == 2

    def test_ids_are_unique(self, controller):
        for x in range(0, 400, 50):
            place(controller, Tool.BALL, x + 10, 600)
        ids = [item.id for item in controller.items]
        assert len(set(ids)) == len(ids)

    def test_text_placement_enters_editing(self, controller, recorder):
        controller.set_color("#123456")
        text = place(controller, Tool.TEXT, 200, 200)
        assert isinstance(text, TextItem)
        assert text.text == "Novo Texto"
        assert text.color == "#123456"
        assert text.width == pytest.approx(96.0)
        assert text.height == 16.0
        assert controller.state is EditorState.EDITING_TEXT
        assert recorder.text_edits[-1].id == text.id
        assert controller.history.depth == 2


class TestTextEditing:
    def test_commit_text_edit(self, controller, recorder):
        text = place(controller, Tool.TEXT, 200, 200)
        assert controller.commit_text_edit(text="Bloqueio", bold=True, alignment="left")
        edited = controller.scene.get(text.id)
        assert edited.text == "Bloqueio"
        assert edited.bold
        assert edited.alignment is TextAlignment.LEFT
        assert edited.width == pytest.approx(8 * 16 * 0.6)
        assert controller.state is EditorState.IDLE
        assert controller.history.depth == 3
        assert len(recorder.changes) == 2

    def test_cancel_text_edit_does_not_commit(self, controller):
        place(controller, Tool.TEXT, 200, 200)
        controller.cancel_text_edit()
        assert controller.state is EditorState.IDLE
        assert controller.history.depth == 2

    def test_commit_rejects_unknown_fields(self, controller):
        place(controller, Tool.TEXT, 200, 200)
        with pytest.raises(ValueError):
            controller.commit_text_edit(position=Point(0, 0))
        assert controller.state is EditorState.EDITING_TEXT

    def test_double_click_text_opens_editor(self, controller, recorder):
        text = place(controller, Tool.TEXT, 200, 200)
        controller.cancel_text_edit()
        controller.set_tool(Tool.SELECT)
        assert controller.double_click(Point(200, 200)).id == text.id
        assert controller.state is EditorState.EDITING_TEXT
        assert controller.editing_item.id == text.id
        assert len(recorder.text_edits) == 2

    def test_pointer_events_ignored_while_editing(self, controller):
        place(controller, Tool.TEXT, 200, 200)
        controller.set_tool(Tool.BALL)
        controller.pointer_down(Point(400, 600))
        controller.pointer_up(Point(400, 600))
        assert len(controller.items) == 1
        assert controller.state is EditorState.EDITING_TEXT

    def test_escape_cancels_editing(self, controller):
        place(controller, Tool.TEXT, 200, 200)
        assert controller.key_press("Escape")
        assert controller.state is EditorState.IDLE


class TestPlayerNumber:
    def test_double_click_prompts(self, recorder):
        asked = []

        def prompt(current):
            asked.append(current)
            return "10"

        controller = InteractionController(on_change=recorder.on_change, number_prompt=prompt)
        player = place(controller, Tool.PLAYER_BLUE, 100, 100)
        controller.set_tool(Tool.SELECT)
        controller.double_click(Point(100, 100))
        assert asked == [1]
        assert controller.scene.get(player.id).number == 10
        assert controller.history.depth == 3

    def test_dismissed_prompt_changes_nothing(self):
        controller = InteractionController(number_prompt=lambda current: None)
        player = place(controller, Tool.PLAYER_BLUE, 100, 100)
        controller.double_click(Point(100, 100))
        assert controller.scene.get(player.id).number == 1
        assert controller.history.depth == 2

    def test_unparseable_number_clears_it(self):
        controller = InteractionController(number_prompt=lambda current: "abc")
        player = place(controller, Tool.PLAYER_BLUE, 100, 100)
        controller.double_click(Point(100, 100))
        assert controller.scene.get(player.id).number is None

    def test_double_click_on_empty_space(self, controller):
        assert controller.double_click(Point(10, 10)) is None

    @pytest.mark.parametrize(
        "text, expected",
        [("7", 7), (" 12abc", 12), ("abc", None), ("", None), ("0", None), (None, None)],
    )
    def test_parse_jersey_number(self, text, expected):
        assert parse_jersey_number(text) == expected


class TestDragging:
    def test_drag_scenario(self, controller):
        player = place(controller, Tool.PLAYER_BLUE, 50, 50)
        controller.set_tool(Tool.SELECT)
        depth = controller.history.depth

        drag(controller, Point(50, 50), Point(80, 80), steps=20)

        moved = controller.scene.get(player.id)
        assert moved.position.x == pytest.approx(80)
        assert moved.position.y == pytest.approx(80)
        assert controller.history.depth == depth + 1
        assert controller.state is EditorState.IDLE

    def test_drag_keeps_grab_offset(self, controller):
        ball = place(controller, Tool.BALL, 100, 100)
        controller.set_tool(Tool.SELECT)
        drag(controller, Point(105, 100), Point(205, 150), steps=4)
        assert controller.scene.get(ball.id).position == Point(200, 150)

    def test_moves_are_live_but_uncommitted(self, controller, recorder):
        ball = place(controller, Tool.BALL, 100, 100)
        controller.set_tool(Tool.SELECT)
        controller.pointer_down(Point(100, 100))
        controller.pointer_move(Point(120, 100))
        assert controller.state is EditorState.DRAGGING
        assert controller.scene.get(ball.id).position == Point(120, 100)
        assert controller.history.depth == 2
        assert len(recorder.changes) == 1

    def test_click_without_move_adds_no_entry(self, controller):
        place(controller, Tool.BALL, 100, 100)
        place(controller, Tool.BALL, 300, 300)
        controller.set_tool(Tool.SELECT)
        depth = controller.history.depth
        controller.pointer_down(Point(100, 100))
        controller.pointer_up(Point(100, 100))
        assert controller.history.depth == depth
        assert controller.scene.selected_ids == [controller.items[0].id]

    def test_release_outside_uses_last_position(self, controller):
        ball = place(controller, Tool.BALL, 100, 100)
        controller.set_tool(Tool.SELECT)
        controller.pointer_down(Point(100, 100))
        controller.pointer_move(Point(140, 100))
        controller.pointer_up(None)
        assert controller.scene.get(ball.id).position == Point(140, 100)
        assert controller.history.depth == 3

    def test_empty_click_clears_selection(self, controller):
        place(controller, Tool.BALL, 100, 100)
        controller.set_tool(Tool.SELECT)
        controller.pointer_down(Point(400, 600))
        controller.pointer_up(Point(400, 600))
        assert controller.scene.selected_ids == []
        assert controller.state is EditorState.IDLE

    def test_drag_topmost_item(self):
        controller = InteractionController(
            [
                BallItem(id="ball", position=Point(100, 100)),
                PlayerItem(id="player", position=Point(105, 100), team=Team.RED),
            ]
        )
        drag(controller, Point(102, 100), Point(102, 200), steps=2)
        assert controller.scene.get("player").position == Point(105, 200)
        assert controller.scene.get("ball").position == Point(100, 100)

    def test_tool_change_mid_gesture_is_deferred(self, controller):
        ball = place(controller, Tool.BALL, 100, 100)
        controller.set_tool(Tool.SELECT)
        controller.pointer_down(Point(100, 100))
        controller.set_tool(Tool.ARROW)
        controller.pointer_move(Point(150, 100))
        controller.pointer_up(Point(150, 100))
        assert controller.scene.get(ball.id).position == Point(150, 100)
        assert not any(isinstance(item, ArrowItem) for item in controller.items)


class TestResizing:
    def test_resize_from_corner_handle(self, controller):
        player = place(controller, Tool.PLAYER_BLUE, 100, 100)
        controller.set_tool(Tool.SELECT)
        depth = controller.history.depth

        controller.pointer_down(Point(118, 118))
        assert controller.state is EditorState.RESIZING
        for x in range(119, 131):
            controller.pointer_move(Point(x, x))
        controller.pointer_up(Point(130, 130))

        resized = controller.scene.get(player.id)
        assert (resized.width, resized.height) == (60.0, 60.0)
        assert resized.position == Point(100, 100)
        assert controller.history.depth == depth + 1

    def test_resize_respects_minimum(self, controller):
        ball = place(controller, Tool.BALL, 100, 100)
        controller.set_tool(Tool.SELECT)
        controller.pointer_down(Point(90, 90))
        controller.pointer_up(Point(100, 100))
        resized = controller.scene.get(ball.id)
        assert (resized.width, resized.height) == (10.0, 10.0)

    def test_handles_only_on_selected_item(self, controller):
        place(controller, Tool.PLAYER_BLUE, 100, 100)
        controller.set_tool(Tool.SELECT)
        controller.pointer_down(Point(400, 600))
        controller.pointer_up(Point(400, 600))
        controller.pointer_down(Point(118, 118))
        assert controller.state is EditorState.IDLE

    @pytest.mark.parametrize(
        "alignment, handle_point, pointer",
        [
            (TextAlignment.LEFT, Point(180, 110), Point(190, 115)),
            (TextAlignment.RIGHT, Point(100, 110), Point(110, 115)),
        ],
    )
    def test_aligned_text_resize_is_stable(self, alignment, handle_point, pointer):
        text = TextItem(
            id="t", position=Point(100, 100), width=80, height=20, alignment=alignment, selected=True
        )
        controller = InteractionController([text])
        controller.pointer_down(handle_point)
        assert controller.state is EditorState.RESIZING

        sizes = []
        for _ in range(4):
            controller.pointer_move(pointer)
            resized = controller.scene.get("t")
            sizes.append((resized.width, resized.height))
        controller.pointer_up(pointer)

        assert set(sizes) == {(100.0, 30.0)}
        assert controller.history.depth == 2


class TestArrows:
    def test_arrow_scenario(self, controller):
        controller.set_tool(Tool.ARROW)
        controller.set_color("#000000")
        controller.pointer_down(Point(0, 0))
        assert controller.state is EditorState.DRAWING_ARROW
        controller.pointer_move(Point(60, 0))
        controller.pointer_up(Point(100, 0))

        arrow = controller.items[-1]
        assert isinstance(arrow, ArrowItem)
        assert arrow.end_position == Point(100, 0)
        assert arrow.color == "#000000"
        assert arrow.thickness == 4.0
        assert controller.history.depth == 2
        assert controller.scene.find_topmost_at(Point(50, 3)).id == arrow.id
        assert controller.scene.find_topmost_at(Point(50, 10)) is None

    def test_zero_length_arrow_is_kept(self, controller):
        controller.set_tool(Tool.ARROW)
        controller.pointer_down(Point(10, 10))
        controller.pointer_up(Point(10, 10))
        arrow = controller.items[-1]
        assert arrow.position == arrow.end_position

    def test_color_is_read_at_gesture_start(self, controller):
        controller.set_tool(Tool.ARROW)
        controller.set_color("#111111")
        controller.pointer_down(Point(0, 0))
        controller.set_color("#222222")
        controller.pointer_up(Point(50, 50))
        assert controller.items[-1].color == "#111111"

    def test_overlay_while_drawing(self, controller):
        controller.set_tool(Tool.ARROW)
        assert controller.overlay() is None
        controller.pointer_down(Point(0, 0))
        controller.pointer_move(Point(30, 40))
        overlay = controller.overlay()
        assert overlay.arrow_start == Point(0, 0)
        assert overlay.arrow_end == Point(30, 40)
        controller.pointer_up(Point(30, 40))
        assert controller.overlay() is None


class TestFreeDrawing:
    def stroke(self, controller, points):
        controller.pointer_down(points[0])
        for point in points[1:]:
            controller.pointer_move(point)
        controller.pointer_up(points[-1])

    def test_stroke_creates_item(self, controller):
        controller.set_tool(Tool.FREE_DRAW)
        controller.set_color("#8B5CF6")
        self.stroke(controller, [Point(0, 0), Point(10, 10), Point(20, 0)])

        item = controller.items[-1]
        assert isinstance(item, FreeDrawItem)
        assert item.position == Point(0, 0)
        assert item.color == "#8B5CF6"
        assert len(item.paths) == 1
        assert item.paths[0].points == (Point(0, 0), Point(10, 10), Point(20, 0))
        assert controller.history.depth == 2

    def test_consecutive_strokes_share_an_item(self, controller):
        controller.set_tool(Tool.FREE_DRAW)
        self.stroke(controller, [Point(0, 0), Point(10, 10)])
        self.stroke(controller, [Point(50, 50), Point(60, 60)])
        assert len(controller.items) == 1
        assert len(controller.items[0].paths) == 2
        assert controller.history.depth == 3

    def test_switching_tools_starts_a_new_item(self, controller):
        controller.set_tool(Tool.FREE_DRAW)
        self.stroke(controller, [Point(0, 0), Point(10, 10)])
        controller.set_tool(Tool.SELECT)
        controller.set_tool(Tool.FREE_DRAW)
        self.stroke(controller, [Point(50, 50), Point(60, 60)])
        assert len(controller.items) == 2

    def test_stroke_history_granularity(self, controller):
        controller.set_tool(Tool.FREE_DRAW)
        points = [Point(x, (x % 7) * 3) for x in range(100)]
        self.stroke(controller, points)
        assert controller.history.depth == 2

    def test_pressure_is_captured(self, controller):
        controller.set_tool(Tool.FREE_DRAW)
        controller.pointer_down(Point(0, 0), pressure=0.5)
        controller.pointer_move(Point(10, 10), pressure=0.25)
        controller.pointer_up(Point(10, 10))
        assert controller.items[0].paths[0].pressures == (0.5, 0.25)

    def test_overlay_shows_live_stroke(self, controller):
        controller.set_tool(Tool.FREE_DRAW)
        controller.pointer_down(Point(0, 0))
        controller.pointer_move(Point(5, 5))
        overlay = controller.overlay()
        assert overlay.stroke_points == (Point(0, 0), Point(5, 5))
        assert overlay.stroke_thickness == 3.0

    def test_release_outside_finishes_stroke(self, controller):
        controller.set_tool(Tool.FREE_DRAW)
        controller.pointer_down(Point(0, 0))
        controller.pointer_move(Point(30, 0))
        controller.pointer_up(None)
        assert len(controller.items) == 1
        assert controller.state is EditorState.IDLE


class TestCommands:
    def test_undo_redo(self, controller, recorder):
        ball = place(controller, Tool.BALL, 100, 100)
        place(controller, Tool.BLOCK, 300, 300)

        assert controller.undo()
        assert [item.id for item in controller.items] == [ball.id]
        assert controller.redo()
        assert len(controller.items) == 2
        assert len(recorder.changes) == 4

    def test_undo_at_start_is_noop(self, controller):
        assert not controller.undo()
        assert not controller.redo()

    def test_undo_restores_previous_snapshot_each_step(self, controller):
        snapshots = [controller.items]
        for x in range(50, 450, 100):
            place(controller, Tool.BALL, x, 100)
            snapshots.append(controller.items)

        def strip(items):
            return [(item.id, item.position) for item in items]

        for expected in reversed(snapshots[:-1]):
            controller.undo()
            assert strip(controller.items) == strip(expected)
        for expected in snapshots[1:]:
            controller.redo()
            assert strip(controller.items) == strip(expected)

    def test_undo_keeps_current_selection(self, controller):
        ball = place(controller, Tool.BALL, 100, 100)
        controller.set_tool(Tool.SELECT)
        drag(controller, Point(100, 100), Point(200, 100), steps=2)
        controller.undo()
        assert controller.scene.get(ball.id).position == Point(100, 100)
        assert controller.scene.selected_ids == [ball.id]

    def test_new_action_after_undo_discards_redo(self, controller):
        place(controller, Tool.BALL, 100, 100)
        place(controller, Tool.BALL, 200, 100)
        controller.undo()
        place(controller, Tool.BLOCK, 300, 300)
        assert not controller.redo()
        assert controller.history.depth == 3

    def test_delete_selected(self, controller):
        place(controller, Tool.BALL, 100, 100)
        place(controller, Tool.BALL, 200, 100)
        assert controller.delete_selected()
        assert len(controller.items) == 1
        assert controller.history.depth == 4
        assert not controller.delete_selected()

    def test_delete_key(self, controller):
        place(controller, Tool.BALL, 100, 100)
        assert controller.key_press("Delete")
        assert controller.items == []
        assert not controller.key_press("Enter")

    def test_clear(self, controller):
        place(controller, Tool.BALL, 100, 100)
        place(controller, Tool.BALL, 200, 100)
        assert controller.clear()
        assert controller.items == []
        assert controller.history.depth == 4
        assert not controller.clear()

    def test_select_all(self, controller):
        place(controller, Tool.BALL, 100, 100)
        place(controller, Tool.BALL, 200, 100)
        depth = controller.history.depth
        controller.select_all()
        assert len(controller.scene.selected_ids) == 2
        assert controller.history.depth == depth
        assert controller.key_press("Escape")
        assert controller.scene.selected_ids == []

    def test_history_limit_from_config(self):
        controller = InteractionController(config=BoardConfig(history_limit=5))
        for x in range(10):
            place(controller, Tool.BALL, 20 + x * 40, 100)
        assert controller.history.depth == 5

    def test_reset_replaces_scene_and_history(self, controller):
        place(controller, Tool.BALL, 100, 100)
        controller.reset([BallItem(id="loaded", position=Point(1, 1))])
        assert [item.id for item in controller.items] == ["loaded"]
        assert controller.history.depth == 1
        assert not controller.undo()


class TestHostWiring:
    def test_initial_items(self):
        items = [BallItem(id="ball_0", position=Point(10, 10))]
        controller = InteractionController(items)
        assert controller.items == items
        assert controller.history.current == tuple(items)

    def test_generated_ids_skip_loaded_ones(self):
        controller = InteractionController([BallItem(id="ball_0", position=Point(10, 10))])
        ball = place(controller, Tool.BALL, 300, 300)
        assert ball.id != "ball_0"

    def test_repaint_on_live_changes(self, controller, recorder):
        place(controller, Tool.BALL, 100, 100)
        controller.set_tool(Tool.SELECT)
        before = recorder.repaints
        controller.pointer_down(Point(100, 100))
        controller.pointer_move(Point(110, 100))
        assert recorder.repaints >= before + 2

    def test_to_logical(self, controller):
        assert controller.to_logical(Point(50, 70), (250, 350)) == Point(100, 140)

    def test_custom_text_measurer(self):
        controller = InteractionController(text_measurer=lambda item: (len(item.text) * 10.0, 12.0))
        text = place(controller, Tool.TEXT, 200, 200)
        assert (text.width, text.height) == (100.0, 12.0)

    def test_on_change_receives_item_list(self, controller, recorder):
        place(controller, Tool.BALL, 100, 100)
        assert isinstance(recorder.changes[-1], list)
        assert recorder.changes[-1][0].id == controller.items[0].id

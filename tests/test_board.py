"""Tests for the board graph and board data loading."""

import pytest

from critocracy.game.board import (
    AGE_NAMES,
    OptionKind,
    SpaceType,
    board_from_dict,
    load_board,
    PATH_ORDER,
)
from critocracy.game.errors import BoardDataError

from conftest import line_board_data


class TestBundledBoard:
    def test_start_offers_one_option_per_path(self, board):
        result = board.next_options(board.start.coords)
        assert result.kind == OptionKind.START
        assert len(result.options) == 4
        assert [o.path for o in result.options] == ["purple", "blue", "cyan", "pink"]

    def test_find_space_exact_coordinates(self, board):
        for space in board.spaces():
            for tolerance in (0, 1, 5):
                assert board.find_space(space.coords, tolerance=tolerance) is space

    def test_find_space_within_tolerance(self, board):
        space = board.find_space((303, 204))
        assert space is not None
        assert space.coords == (300, 200)

    def test_find_space_miss(self, board):
        assert board.find_space((250, 300)) is None
        assert board.find_space(None) is None

    def test_every_space_reaches_finish(self, board):
        for space in board.spaces():
            hops = board.hops_to_finish(space.coords)
            assert hops is not None, f"{space.coords} cannot reach the finish"
            assert hops <= 30

    def test_finish_has_no_options(self, board):
        result = board.next_options(board.finish.coords)
        assert result.kind == OptionKind.FINISH
        assert result.options == []

    def test_regular_space_single_successor(self, board):
        result = board.next_options((200, 200))
        assert result.kind == OptionKind.REGULAR
        assert [o.coords for o in result.options] == [(300, 200)]
        assert result.options[0].path == "purple"

    def test_junction_options_tagged_with_path(self, board):
        result = board.next_options((600, 200))
        assert result.kind == OptionKind.JUNCTION
        tagged = {o.coords: o.path for o in result.options}
        assert tagged == {(700, 200): "purple", (700, 400): "blue"}

    def test_choicepoint_options(self, board):
        result = board.next_options((500, 624))
        assert result.kind == OptionKind.CHOICEPOINT
        assert {o.coords for o in result.options} == {(600, 624), (600, 724)}
        assert all(o.path == "cyan" for o in result.options)

    def test_unknown_coordinates(self, board):
        result = board.next_options((1, 1))
        assert result.kind == OptionKind.UNKNOWN
        assert result.options == []

    def test_decision_spaces_have_polygons(self, board):
        decisions = [s for s in board.spaces() if s.is_decision]
        assert len(decisions) == 4
        for space in decisions:
            assert len(space.polygon) >= 3
            assert len(space.next) >= 2
        assert len(board.polygon_spaces) == 4

    def test_last_space_leads_to_finish(self, board):
        for color in PATH_ORDER:
            last = [s for s in board.path_spaces(color) if s.coords[0] == 1300][0]
            assert last.next == [board.finish.coords]

    def test_previous_options_prefer_same_path(self, board):
        previous = board.previous_options((700, 400))
        assert previous[0].coords == (600, 400)
        assert previous[0].path == "blue"
        assert (600, 200) in [p.coords for p in previous]

    def test_previous_of_first_space_is_start(self, board):
        previous = board.previous_options((200, 200))
        assert [p.coords for p in previous] == [board.start.coords]
        assert board.previous_options(board.start.coords) == []

    def test_path_color_for_age_names(self, board):
        assert board.path_color_for("purple") == "purple"
        assert board.path_color_for("Age of Reckoning") == "cyan"
        assert board.path_color_for("legacy") == "pink"
        assert board.path_color_for("Age of Nothing") is None
        assert board.names == AGE_NAMES

    def test_nearest_space(self, board):
        space = board.nearest_space((700, 200), "blue")
        assert space.coords == (700, 400)
        assert board.nearest_space(None, "pink").coords == (200, 824)
        assert board.nearest_space((700, 200), "orange") is None


class TestBoardData:
    def test_line_board_builds(self, line_board):
        assert len(line_board.paths) == 4
        assert line_board.find_space((300, 0)).space_type == SpaceType.REGULAR
        assert line_board.hops_to_finish(line_board.start.coords) == 6

    def test_space_types_applied(self):
        board = board_from_dict(line_board_data(purple_types={300: "draw"}))
        assert board.find_space((300, 0)).is_draw

    def test_junction_needs_two_successors(self):
        data = line_board_data(
            purple_types={300: "junction"},
            purple_extra={300: {"next": [[400, 0]],
                                "polygon": [[280, -20], [320, -20], [320, 20]]}},
        )
        with pytest.raises(BoardDataError):
            board_from_dict(data)

    def test_junction_needs_polygon(self):
        data = line_board_data(
            purple_types={300: "junction"},
            purple_extra={300: {"next": [[400, 0], [400, 100]]}},
        )
        with pytest.raises(BoardDataError):
            board_from_dict(data)

    def test_successor_must_exist(self):
        data = line_board_data(purple_extra={200: {"next": [[250, 50]]}})
        with pytest.raises(BoardDataError, match="not on the board"):
            board_from_dict(data)

    def test_start_must_cover_every_path(self):
        data = line_board_data()
        del data["start"]["first"]["pink"]
        with pytest.raises(BoardDataError):
            board_from_dict(data)

    def test_load_board_from_file(self, tmp_path):
        import yaml
        path = tmp_path / "board.yaml"
        path.write_text(yaml.safe_dump(line_board_data()))
        board = load_board(path)
        assert board.finish.coords == (1000, 150)

import csv

import pytest

import project_backtracking
from project_backtracking import (FIELDNAMES, build_parser, get_difficulty_category, main,
                                  merge_stats, print_metrics_table, process_chunk, process_metrics,
                                  read_puzzles, solve_dataset, solve_row)

WIKI_PUZZLE = "53..7....6..195....98....6.8...6...34..8.3..17...2...6.6....28....419..5....8..79"
WIKI_SOLUTION = "534678912672195348198342567859761423426853791713924856961537284287419635345286179"
SOLVED_4X4 = "1234341221434321"
SPARSE_4X4 = "1..........2...."
HIDDEN_DEAD_END_4X4 = "12.....3........"

DATASET_ROWS = [
    {'id': '1', 'puzzle': WIKI_PUZZLE, 'solution': WIKI_SOLUTION, 'clues': '30', 'difficulty': '0.5'},
    {'id': '2', 'puzzle': HIDDEN_DEAD_END_4X4, 'solution': '', 'clues': '3', 'difficulty': '2.0'},
    {'id': '3', 'puzzle': 'bad', 'solution': '', 'clues': '', 'difficulty': '4.0'},
    {'id': '4', 'puzzle': SPARSE_4X4, 'solution': '', 'clues': '2', 'difficulty': '3.5'},
    {'id': '5', 'puzzle': SOLVED_4X4, 'solution': '1234341221434312', 'clues': '16', 'difficulty': '1.5'},
]


@pytest.fixture
def dataset(tmp_path):
    path = tmp_path / 'puzzles.csv'
    with open(path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=['id', 'puzzle', 'solution', 'clues', 'difficulty'])
        writer.writeheader()
        writer.writerows(DATASET_ROWS)
    return str(path)


def read_results(path):
    with open(path, newline='') as f:
        return list(csv.DictReader(f))


def test_read_puzzles_csv(dataset):
    rows = read_puzzles(dataset)
    assert [row['id'] for row in rows] == ['1', '2', '3', '4', '5']
    assert rows[0]['puzzle'] == WIKI_PUZZLE


def test_read_puzzles_max(dataset):
    assert len(read_puzzles(dataset, max_puzzles=2)) == 2


def test_read_puzzles_text_file(tmp_path):
    path = tmp_path / 'puzzles.txt'
    path.write_text(f"{SOLVED_4X4}\n\n{SPARSE_4X4}\n")
    rows = read_puzzles(str(path))
    assert rows == [{'id': '1', 'puzzle': SOLVED_4X4}, {'id': '3', 'puzzle': SPARSE_4X4}]


def test_read_puzzles_csv_without_puzzle_column(tmp_path):
    path = tmp_path / 'other.csv'
    path.write_text("id,grid\n1,abc\n")
    with pytest.raises(ValueError, match="'puzzle' column"):
        read_puzzles(str(path))


def test_solve_row_solved():
    output_row, result = solve_row({'id': '7', 'puzzle': WIKI_PUZZLE}, 'sorted')
    assert result.solved
    assert output_row['id'] == '7'
    assert output_row['computed_solution'] == WIKI_SOLUTION
    assert float(output_row['solve_time']) >= 0.0
    assert set(output_row) == set(FIELDNAMES)


def test_solve_row_unsolvable():
    output_row, result = solve_row({'puzzle': HIDDEN_DEAD_END_4X4}, 'naive')
    assert not result.solved
    assert output_row['computed_solution'] == ''


def test_solve_row_parse_error():
    output_row, result = solve_row({'puzzle': '12#4' * 4}, 'pruned')
    assert result is None
    assert output_row['computed_solution'].startswith('ERROR: Invalid character')
    assert output_row['solve_time'] == '0.000000'


def test_process_chunk(tmp_path):
    temp_file, stats = process_chunk((3, DATASET_ROWS, str(tmp_path), 'sorted'))
    assert temp_file == str(tmp_path / 'chunk_3.csv')
    assert stats['total'] == 5
    assert stats['solved'] == 3
    assert stats['failed'] == 1
    assert stats['errors'] == 1
    assert stats['correct'] == 2
    assert stats['incorrect'] == 1
    assert stats['longest_time'] <= stats['total_time']
    assert [row['id'] for row in read_results(temp_file)] == ['1', '2', '3', '4', '5']


def test_merge_stats():
    stats = {'total': 1, 'solved': 1, 'failed': 0, 'correct': 1, 'incorrect': 0,
             'errors': 0, 'total_time': 0.5, 'longest_time': 0.5}
    merge_stats(stats, {'total': 2, 'solved': 1, 'failed': 1, 'correct': 0, 'incorrect': 1,
                        'errors': 0, 'total_time': 0.25, 'longest_time': 0.2})
    assert stats['total'] == 3
    assert stats['incorrect'] == 1
    assert stats['total_time'] == pytest.approx(0.75)
    assert stats['longest_time'] == 0.5


@pytest.mark.parametrize("workers", [1, 2])
def test_solve_dataset(dataset, tmp_path, workers):
    output = str(tmp_path / 'out' / 'results.csv')
    stats, path = solve_dataset(dataset, output_path=output, num_workers=workers,
                                method='pruned', quiet=True)

    assert path == output
    assert stats['total'] == 5
    assert stats['solved'] == 3
    assert stats['failed'] == 1
    assert stats['errors'] == 1

    rows = read_results(output)
    assert [row['id'] for row in rows] == ['1', '2', '3', '4', '5']
    assert rows[0]['computed_solution'] == WIKI_SOLUTION
    assert rows[2]['computed_solution'].startswith('ERROR')
    # Temp chunk directory is removed
    assert sorted(p.name for p in (tmp_path / 'out').iterdir()) == ['results.csv']


def test_solve_dataset_default_output(dataset, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _, path = solve_dataset(dataset, max_puzzles=1, num_workers=1, quiet=True)
    assert path.startswith('results')
    assert 'puzzles_sorted_results_' in path
    assert len(read_results(tmp_path / path)) == 1


@pytest.mark.parametrize("kwargs", [{'num_workers': 0}, {'max_puzzles': 0}, {'method': 'dlx'}])
def test_solve_dataset_rejects_bad_options(dataset, kwargs):
    with pytest.raises(ValueError):
        solve_dataset(dataset, quiet=True, **kwargs)


@pytest.mark.parametrize("value, expected", [
    ('0.0', 'Easy'), ('0.9', 'Easy'), ('1.0', 'Medium'), ('2.9', 'Medium'),
    ('3.0', 'Hard'), ('7', 'Hard'), ('', None), ('abc', None), (None, None), ('-1', None),
])
def test_get_difficulty_category(value, expected):
    assert get_difficulty_category(value) == expected


def test_process_metrics(dataset, tmp_path):
    output = str(tmp_path / 'results.csv')
    solve_dataset(dataset, output_path=output, num_workers=1, quiet=True)
    metrics = process_metrics(output)

    assert metrics['Easy']['count'] == 1
    assert metrics['Medium']['count'] == 1
    assert metrics['Hard']['count'] == 1
    assert metrics['All']['count'] == 3
    assert metrics['All']['Minimum'] <= metrics['All']['Median'] <= metrics['All']['Maximum']


def test_print_metrics_table(capsys):
    empty = {'Minimum': 0.0, 'Median': 0.0, 'Mean': 0.0, 'Maximum': 0.0, 'count': 0}
    filled = {'Minimum': 0.1, 'Median': 0.2, 'Mean': 0.25, 'Maximum': 0.5, 'count': 4}
    print_metrics_table({'Easy': filled, 'Medium': empty, 'Hard': empty, 'All': filled}, 'sorted')

    out = capsys.readouterr().out
    assert "CPU Time (sec)" in out
    assert "Sorted" in out
    assert "Easy:" in out
    assert "Medium:" not in out
    assert "0.500000" in out
    assert "Statistics based on 4 successfully solved puzzles" in out


def test_main_test_mode_solves(capsys):
    assert main(['--method', 'pruned', 'test', '--puzzle', WIKI_PUZZLE]) == 0
    out = capsys.readouterr().out
    assert "Testing pruned on:" in out
    assert "Took " in out
    assert "Solution:" in out
    assert "| 5 3 4 | 6 7 8 | 9 1 2 |" in out


def test_main_test_mode_no_solution(capsys):
    assert main(['test', '--puzzle', HIDDEN_DEAD_END_4X4]) == 2
    assert "No solution found for sudoku" in capsys.readouterr().out


def test_main_test_mode_naive_warns(capsys):
    assert main(['--method', 'naive', 'test', '--puzzle', SPARSE_4X4]) == 0
    assert "[WARN]" in capsys.readouterr().out


def test_main_test_mode_parse_error(capsys):
    assert main(['test', '--puzzle', '1234']) == 1
    assert "Invalid puzzle length" in capsys.readouterr().err


def test_main_dataset_missing_file(tmp_path, capsys):
    assert main(['dataset', '--csv', str(tmp_path / 'missing.csv')]) == 1
    assert "File not found" in capsys.readouterr().err


def test_main_dataset(dataset, tmp_path, capsys):
    output = str(tmp_path / 'results.csv')
    status = main(['--method', 'sorted', 'dataset', '--csv', dataset, '--output', output,
                   '--workers', '1', '--quiet'])
    assert status == 0

    out = capsys.readouterr().out
    assert "Total puzzles processed: 5" in out
    assert "Successfully solved: 3" in out
    assert "Errors encountered: 1" in out
    assert "Longest solve time:" in out
    assert "Success rate: 60.00%" in out
    assert "CPU Time (sec)" in out


def test_main_dataset_bad_workers(dataset, capsys):
    assert main(['dataset', '--csv', dataset, '--workers', '0', '--quiet']) == 1
    assert "at least 1" in capsys.readouterr().err


def test_default_puzzle_parses():
    assert len(project_backtracking.DEFAULT_PUZZLE) == 81


def test_solve_row_out_of_range_letter():
    output_row, result = solve_row({'puzzle': '12x4' * 4}, 'pruned')
    assert result is None
    assert output_row['computed_solution'].startswith("ERROR: Clue value 'x'")


def test_solve_dataset_removes_temp_dir_when_a_chunk_fails(dataset, tmp_path, monkeypatch):
    def failing_chunk(args):
        raise RuntimeError("worker crashed")

    monkeypatch.setattr(project_backtracking, 'process_chunk', failing_chunk)
    out_dir = tmp_path / 'out'
    with pytest.raises(RuntimeError, match="worker crashed"):
        solve_dataset(dataset, output_path=str(out_dir / 'results.csv'), num_workers=1, quiet=True)
    assert list(out_dir.iterdir()) == []


@pytest.mark.parametrize("argv", [
    ['test', '--method', 'naive', '--puzzle', SPARSE_4X4],
    ['--method', 'naive', 'test', '--puzzle', SPARSE_4X4],
])
def test_main_test_mode_method_before_or_after_subcommand(argv, capsys):
    assert main(argv) == 0
    assert "Testing naive on:" in capsys.readouterr().out


def test_subcommand_method_defaults_to_top_level():
    args = build_parser().parse_args(['--method', 'pruned', 'dataset'])
    assert args.method == 'pruned'
    args = build_parser().parse_args(['dataset', '--method', 'naive'])
    assert args.method == 'naive'
    assert build_parser().parse_args(['test']).method == 'sorted'

import json

import pytest

from treeftp.core.client import DataMode
from treeftp.main import parse_arguments
from treeftp.ui.cli import CLIInterface

from conftest import dir_line, file_line


@pytest.fixture
def cli(make_client, server):
    server.fs.update({
        '/': [dir_line('pub'), file_line('readme')],
        '/pub': [file_line('a')],
    })
    return CLIInterface(client_factory=lambda data_mode: make_client(data_mode=data_mode))


def test_arguments_defaults():
    args = parse_arguments(['ftp.example.com'])
    assert (args.host, args.port, args.depth) == ('ftp.example.com', 21, -1)
    assert (args.user, args.password) == ('anonymous', 'anonymous')
    assert not args.active


def test_arguments_need_user_and_password_together():
    with pytest.raises(SystemExit):
        parse_arguments(['ftp.example.com', '-u', 'bob'])


def test_arguments_full():
    args = parse_arguments(['ftp.example.com', '-port', '2121', '-u', 'bob', '-P', 'pw',
                            '-d', '2', '--json', 'out', '--active'])
    assert args.port == 2121
    assert (args.user, args.password) == ('bob', 'pw')
    assert args.depth == 2
    assert args.json_path == 'out'
    assert args.active


def test_run_prints_tree_and_exports(cli, server, capsys, tmp_path):
    target = str(tmp_path / 'tree')
    assert cli.run('ftp.example.com', 21, 'anonymous', 'anonymous', json_path=target) == 0

    out = capsys.readouterr().out
    assert '├── pub\n│   └── a\n└── readme' in out
    assert '1 directories, 2 files' in out
    with open(target + '.json', encoding='utf-8') as f:
        assert json.load(f)['files'][0]['files'][0]['pathname'] == '/pub/a'
    assert server.commands[-1] == 'QUIT'


def test_run_single_directory(cli, server, capsys):
    assert cli.run('ftp.example.com', 21, 'anonymous', 'anonymous', directory='/pub') == 0
    assert cli.root.pathname == '/pub'
    assert [c.name for c in cli.root.children] == ['a']


def test_run_with_bad_login(cli, capsys):
    assert cli.run('ftp.example.com', 21, 'anonymous', 'wrong') == 1
    assert 'incorrect' in capsys.readouterr().out


def test_run_with_refused_connection(cli, server, capsys):
    server.refuse = True
    assert cli.run('ftp.example.com', 21, 'anonymous', 'anonymous') == 1
    assert 'refused connection' in capsys.readouterr().out


def test_run_reconnects_after_lost_channel(cli, server, capsys):
    server.close_on = 'LIST'
    assert cli.run('ftp.example.com', 21, 'anonymous', 'anonymous') == 1
    out = capsys.readouterr().out
    assert 'Connection to the server reestablished.' in out
    assert 'Some of subdirectories are not explored!' in out


def test_active_flag_reaches_client(make_client):
    cli = CLIInterface(data_mode=DataMode.ACTIVE,
                       client_factory=lambda data_mode: make_client(data_mode=data_mode))
    assert cli.client.data_mode is DataMode.ACTIVE

from context import connection, errors, interfaces
from genericpath import isfile
from threading import Thread
from unittest.mock import MagicMock, patch
import os
import sqlite3
import unittest


DB_FILEPATH = 'test_connection.db'


def sqlite_params(**overrides) -> dict:
    params = {
        'connection': 'sqlite',
        'host': '',
        'database': DB_FILEPATH,
        'user': '',
        'password': '',
        'persistent': False,
    }
    params.update(overrides)
    return params


class TestConnectionConfig(unittest.TestCase):
    def test_from_params_builds_config_with_default_port(self):
        config = connection.ConnectionConfig.from_params({
            'connection': 'mysql',
            'host': 'localhost',
            'database': 'shop',
            'user': 'root',
            'password': 'secret',
            'persistent': True,
        })
        assert config.driver == 'mysql'
        assert config.host == 'localhost'
        assert config.port == 3306
        assert config.persistent is True
        assert config.timeout is None

    def test_from_params_raises_errors_for_invalid_params(self):
        with self.assertRaises(TypeError) as e:
            connection.ConnectionConfig.from_params([('connection', 'sqlite')])
        assert str(e.exception) == 'params must be a mapping'

        params = sqlite_params()
        del params['persistent']
        with self.assertRaises(ValueError) as e:
            connection.ConnectionConfig.from_params(params)
        assert str(e.exception) == 'missing connection param persistent'

        with self.assertRaises(TypeError) as e:
            connection.ConnectionConfig.from_params(sqlite_params(port='3306'))
        assert str(e.exception) == 'port must be int'

        with self.assertRaises(TypeError) as e:
            connection.ConnectionConfig.from_params(sqlite_params(timeout='5'))
        assert str(e.exception) == 'timeout must be int, float, or None'

    def test_from_params_keeps_explicit_port(self):
        config = connection.ConnectionConfig.from_params(sqlite_params(port=0))
        assert config.port == 0

        with self.assertRaises(TypeError) as e:
            connection.ConnectionConfig.from_params(sqlite_params(port=None))
        assert str(e.exception) == 'port must be int'

    def test_from_env_reads_db_variables(self):
        config = connection.ConnectionConfig.from_env({
            'DB_CONNECTION': 'mysql',
            'DB_HOST': 'db.internal',
            'DB_PORT': '3307',
            'DB_DATABASE': 'shop',
            'DB_USERNAME': 'app',
            'DB_PASSWORD': 'secret',
            'DB_PERSISTENT_CONNECTION': 'true',
            'DB_TIMEOUT': '2.5',
        })
        assert config == connection.ConnectionConfig(
            driver='mysql', host='db.internal', database='shop', user='app',
            password='secret', port=3307, persistent=True, timeout=2.5,
        )

        config = connection.ConnectionConfig.from_env({
            'DB_CONNECTION': 'sqlite', 'DB_DATABASE': DB_FILEPATH,
        })
        assert config.port == 3306
        assert config.persistent is False
        assert config.host == ''

    def test_from_env_raises_ValueError_for_invalid_environment(self):
        with self.assertRaises(ValueError) as e:
            connection.ConnectionConfig.from_env({'DB_DATABASE': 'x'})
        assert str(e.exception) == 'DB_CONNECTION must be set'

        with self.assertRaises(ValueError) as e:
            connection.ConnectionConfig.from_env({'DB_CONNECTION': 'sqlite'})
        assert str(e.exception) == 'DB_DATABASE must be set'

        with self.assertRaises(ValueError) as e:
            connection.ConnectionConfig.from_env({
                'DB_CONNECTION': 'sqlite', 'DB_DATABASE': 'x', 'DB_PORT': 'abc',
            })
        assert str(e.exception) == 'DB_PORT must be an integer'

        with self.assertRaises(ValueError) as e:
            connection.ConnectionConfig.from_env({
                'DB_CONNECTION': 'sqlite', 'DB_DATABASE': 'x', 'DB_TIMEOUT': 'soon',
            })
        assert str(e.exception) == 'DB_TIMEOUT must be a number'


class TestConnection(unittest.TestCase):
    def setUp(self) -> None:
        if isfile(DB_FILEPATH):
            os.remove(DB_FILEPATH)
        return super().setUp()

    def tearDown(self) -> None:
        if isfile(DB_FILEPATH):
            os.remove(DB_FILEPATH)
        return super().tearDown()

    def test_Connection_implements_ConnectionProtocol(self):
        conn = connection.Connection(sqlite_params())
        assert isinstance(conn, interfaces.ConnectionProtocol)
        assert isinstance(conn.context(), interfaces.DBContextProtocol)

    def test_Connection_rejects_invalid_config(self):
        with self.assertRaises(TypeError) as e:
            connection.Connection('sqlite:test.db')
        assert str(e.exception) == 'config must be ConnectionConfig or mapping of params'

        with self.assertRaises(ValueError) as e:
            connection.Connection(sqlite_params(connection='oracle'))
        assert str(e.exception) == 'unsupported driver oracle'

    def test_Connection_connect_opens_fresh_handles_when_not_persistent(self):
        conn = connection.Connection(sqlite_params())
        first, second = conn.connect(), conn.connect()
        assert isinstance(first, sqlite3.Connection)
        assert first is not second
        first.close()
        second.close()

    def test_Connection_connect_reuses_handle_when_persistent(self):
        conn = connection.Connection(sqlite_params(persistent=True))
        assert conn.connect() is conn.connect()
        conn.close()
        assert conn._handle is None

    def test_Connection_connect_raises_ExecutionFailure(self):
        conn = connection.Connection(sqlite_params(database='missing/dir/test.db'))
        with self.assertRaises(errors.ExecutionFailure) as e:
            conn.connect()
        assert 'could not connect' in str(e.exception)

    def test_Connection_status_reports_driver_and_database(self):
        status = connection.Connection(sqlite_params()).status()
        assert status == f"sqlite3 {sqlite3.sqlite_version} via {DB_FILEPATH}"

    def test_Connection_prepare_translates_placeholders(self):
        sqlite_conn = connection.Connection(sqlite_params())
        sql = 'SELECT * FROM t WHERE a = ? AND b LIKE ?'
        assert sqlite_conn.prepare(sql) == sql

        mysql_conn = connection.Connection(sqlite_params(connection='mysql'))
        assert mysql_conn.prepare(sql) == 'SELECT * FROM t WHERE a = %s AND b LIKE %s'
        assert mysql_conn.prepare('SELECT 5 % 2 FROM t WHERE a = ?') == \
            'SELECT 5 %% 2 FROM t WHERE a = %s'
        assert 'information_schema' in mysql_conn.columns_sql

    def test_DBContext_commits_on_success(self):
        conn = connection.Connection(sqlite_params())
        with conn.context() as cursor:
            cursor.execute('create table t (a integer)')
            cursor.execute('insert into t (a) values (?)', [1])

        with conn.context() as cursor:
            cursor.execute('select a from t')
            assert cursor.fetchall() == [(1,)]

    def test_DBContext_rolls_back_on_error(self):
        conn = connection.Connection(sqlite_params())
        with conn.context() as cursor:
            cursor.execute('create table t (a integer)')

        with self.assertRaises(RuntimeError):
            with conn.context() as cursor:
                cursor.execute('insert into t (a) values (?)', [1])
                raise RuntimeError('abort')

        with conn.context() as cursor:
            cursor.execute('select a from t')
            assert cursor.fetchall() == []

    def test_DBContext_releases_lock_of_persistent_connection(self):
        conn = connection.Connection(sqlite_params(persistent=True))
        with conn.context() as cursor:
            cursor.execute('select 1')

        results = []
        def probe():
            acquired = conn.lock.acquire(blocking=False)
            if acquired:
                conn.lock.release()
            results.append(acquired)

        thread = Thread(target=probe)
        thread.start()
        thread.join()
        assert results == [True]
        conn.close()

    def test_DBContext_closes_fresh_handle_when_cursor_fails(self):
        conn = connection.Connection(sqlite_params())
        handle = MagicMock()
        handle.cursor.side_effect = sqlite3.OperationalError('no cursor')
        with patch.object(conn, 'connect', return_value=handle):
            with self.assertRaises(sqlite3.OperationalError):
                with conn.context():
                    pass
        handle.close.assert_called_once()
        handle.commit.assert_not_called()

    def test_DBContext_rejects_non_Connection(self):
        with self.assertRaises(TypeError) as e:
            connection.DBContext('test.db')
        assert str(e.exception) == 'connection must be Connection'


if __name__ == '__main__':
    unittest.main()

from dbconnect.mysql.session import MysqlDriver, MysqlSession, MysqlStatement

__all__ = ["MysqlDriver", "MysqlSession", "MysqlStatement"]

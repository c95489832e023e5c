import os

# 测试使用内存数据库，必须在导入 app 之前设置
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

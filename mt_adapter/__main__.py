from mt_adapter.main import run

run()

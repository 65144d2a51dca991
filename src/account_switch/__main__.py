from account_switch.cli import run_entrypoint

run_entrypoint()

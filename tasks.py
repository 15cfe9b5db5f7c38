from invoke import task

@task
def format(c):
    c.run("python -m black .")
    c.run("python -m ruff check --fix .")

@task
def lint(c):
    c.run("python -m ruff check .")

@task
def test(c, integration=False):
    c.run("python -m pytest -q" + ("" if integration else " -m 'not integration'"))

@task
def scan(c, image=None, camera=0, profile="phone"):
    src = f"--image {image}" if image else f"--camera {camera}"
    c.run(f"python scripts/scan_live.py {src} --profile {profile}")

@task
def debug(c, image, scale=400, psm=7):
    c.run(f"python scripts/debug_two_pass.py {image} --scale {scale} --psm {psm}")

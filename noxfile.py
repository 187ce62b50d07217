import nox
from nox import Session


@nox.parametrize("numpy", ["1.26.4", "2.0.0", "2.2.0"])
@nox.parametrize("scipy", ["1.13.1", "1.15.0"])
@nox.session(
    python=["3.10", "3.11", "3.12"],
    reuse_venv=True,
    venv_backend="uv|virtualenv",
)
def run_basic_test_suite(session: Session, numpy: str, scipy: str):
    session.install(".[developer]")
    session.install(f"numpy~={numpy}", f"scipy~={scipy}")
    session.run("pip", "freeze")
    session.run("pytest", "-n5", "tests_basic")


@nox.parametrize("numpy", ["2.1.0", "2.2.0"])
@nox.session(
    python="3.13",
    reuse_venv=True,
    venv_backend="uv|virtualenv",
)
def run_basic_test_suite_313(session: Session, numpy: str):
    session.install(".[developer]")
    session.install(f"numpy~={numpy}")
    session.run("pip", "freeze")
    session.run("pytest", "-n5", "tests_basic")


@nox.session(reuse_venv=True, venv_backend="uv|virtualenv")
def build_wheel(session: Session):
    """Build the wheel and sdist"""
    session.install(".[developer]")
    session.run("python", "-m", "build")

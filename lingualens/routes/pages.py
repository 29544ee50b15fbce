from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from jinja2 import Environment, FileSystemLoader, select_autoescape

router = APIRouter(tags=["ui"])

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
_templates_env: Optional[Jinja2Templates] = None


def _templates() -> Jinja2Templates:
    global _templates_env
    if _templates_env is None:
        env = Environment(
            loader=FileSystemLoader([str(TEMPLATES_DIR)]),
            autoescape=select_autoescape(["html", "xml"]),
        )
        _templates_env = Jinja2Templates(env=env)
    return _templates_env


def _page(request: Request, title: str, heading: str, **context):
    return _templates().TemplateResponse(
        request,
        "page.html",
        {"title": title, "heading": heading, **context},
    )


@router.get("/", response_class=HTMLResponse)
def landing_page(request: Request):
    return _page(request, "LinguaLens", "Learn English with AI analysis")


@router.get("/auth/signin", response_class=HTMLResponse)
def signin_page(request: Request, redirect: Optional[str] = None):
    return _page(request, "Sign in", "Sign in", redirect=redirect)


@router.get("/auth/signup", response_class=HTMLResponse)
def signup_page(request: Request):
    return _page(request, "Sign up", "Create an account")


@router.get("/analysis", response_class=HTMLResponse)
def analysis_page(request: Request):
    return _page(request, "Analysis", "Analyze a word, sentence or paragraph")


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard_page(request: Request):
    return _page(request, "Dashboard", "Your progress")


@router.get("/vocabulary", response_class=HTMLResponse)
def vocabulary_page(request: Request):
    return _page(request, "Vocabulary", "Your vocabulary")


@router.get("/sessions", response_class=HTMLResponse)
def sessions_page(request: Request):
    return _page(request, "Sessions", "Analysis sessions")

from __future__ import annotations

from fastapi import FastAPI

from .middleware import AuthMiddleware
from .routes import graph, person, relationship, tree

app = FastAPI(title="Family Tree API", version="0.1.0")
app.add_middleware(AuthMiddleware)

for _module in (tree, person, relationship, graph):
    app.include_router(_module.router, prefix="/api")


@app.get("/health")
def health() -> dict[str, str]:
    return {"ok": "true"}

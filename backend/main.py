import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from api.models import ApiEvent, ApiRegion, ApiRenderRequest
from api.session import get_session
from maps.registry import get_map_meta, list_maps
from maps.types import RegionSelector, StatisticAggregate
from telemetry.singleton import get_store

logger = logging.getLogger(__name__)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/maps")
def maps():
    return [
        {
            "name": m.name,
            "mapType": m.mapType,
            "hasStates": bool(m.graphObjectStates),
        }
        for m in list_maps()
    ]


@app.post("/map/render")
async def render_map(body: ApiRenderRequest):
    try:
        meta = get_map_meta(body.map, view=body.view, stat=body.stat)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    session = get_session()
    aggregates = {
        k: StatisticAggregate.from_dict(v.model_dump())
        for k, v in body.aggregates.items()
    }
    viewport = (body.viewport.width, body.viewport.height) if body.viewport else None
    delta = await session.view.render(
        meta, body.data, aggregates, body.metric, viewport=viewport
    )

    store = get_store()
    if store is not None:
        store.record(
            endpoint="/map/render",
            map_name=meta.name,
            stat=meta.stat,
            metric=body.metric,
            delta=delta.as_stats() if delta is not None else {},
            render_ms=session.view.last_render_ms if delta is not None else None,
            stats={"painted": delta is not None},
        )
    if delta is None:
        logger.info("Map %s rendered without geometry", meta.name)
    return session.plot()


# Every endpoint touching the session is `async def`: the map view is only
# ever mutated on the event loop thread.
@app.post("/map/event")
async def map_event(body: ApiEvent):
    session = get_session()
    if body.type == "click_outside":
        accepted = session.view.click_outside() is not None
    else:
        if not body.featureId:
            raise HTTPException(status_code=422, detail="featureId is required")
        accepted = session.view.dispatch(body.featureId, body.type)
    return {
        "accepted": accepted,
        "events": session.drain_events(),
        "plot": session.plot(),
    }


@app.post("/map/highlight")
async def map_highlight(body: ApiRegion):
    session = get_session()
    session.view.set_region_highlighted(
        RegionSelector(state=body.state, district=body.district)
    )
    return session.plot()


@app.get("/telemetry/summary")
def telemetry_summary(map: str | None = None):
    store = get_store()
    if store is None:
        return []
    return store.summary(map_name=map)

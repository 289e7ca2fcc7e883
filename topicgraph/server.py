"""
HTTP surface for a topic graph session.

Exposes transcript intake, the graph view, snapshot export/import/reset, an
SSE stream of graph changes and the topic oracle endpoint.
"""

import asyncio
import json
import logging
import os
import sys
import time
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.responses import StreamingResponse

from topicgraph.core.config import TopicGraphConfig, get_config
from topicgraph.errors import TopicGraphError, ValidationFailure
from topicgraph.graph.models import CamelModel, GraphState, PriorTopic, TranscriptEntry
from topicgraph.graph.view import project_view
from topicgraph.logging_config import setup_logging
from topicgraph.oracle.topic_oracle import TopicOracle
from topicgraph.session import TopicGraphSession
from topicgraph.sse.event_emitter import GraphEventType, SSEEventEmitter
from topicgraph.transcript_feed import TranscriptFeed

logger = logging.getLogger(__name__)


# Request models
class TranscriptRequest(BaseModel):
    entries: List[TranscriptEntry] = Field(description="Cumulative transcript, oldest first")


class TextRequest(CamelModel):
    text: str
    is_final: bool = True


class AnalyzeTopicRequest(CamelModel):
    conversation_text: str
    previous_topics: List[PriorTopic] = Field(default_factory=list)


def create_app(
    session: Optional[TopicGraphSession] = None,
    oracle: Optional[TopicOracle] = None,
    config: Optional[TopicGraphConfig] = None,
) -> FastAPI:
    """
    Build the FastAPI app around one session.

    Args:
        session: Session to serve (built from config when omitted)
        oracle: Oracle behind /api/analyze-topic (built from config.llm when omitted)
        config: Configuration used for the defaults (get_config() when omitted)
    """
    if session is None or oracle is None:
        config = config or get_config()
    session = session or TopicGraphSession(config)
    oracle = oracle or TopicOracle(config.llm)

    feed = TranscriptFeed()
    session.attach_feed(feed)

    # SSE event queue for streaming graph changes
    sse_event_queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
    emitter = SSEEventEmitter(sse_event_queue)

    def publish(state: GraphState, event: GraphEventType) -> None:
        emitter.emit_nowait(event, project_view(state).model_dump(by_alias=True))

    session.subscribe(publish)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.info("TopicGraph server started")
        yield
        await session.close()
        logger.info("TopicGraph server stopped")

    app = FastAPI(title="TopicGraph Server", description="Builds a topic graph from a live transcript", lifespan=lifespan)
    app.state.session = session
    app.state.feed = feed
    app.state.oracle = oracle

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, specify exact origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        logger.info(f"[RESPONSE] {request.method} {request.url.path} completed in {process_time:.3f}s with status {response.status_code}")
        return response

    @app.post("/transcript")
    async def process_transcript(request: TranscriptRequest):
        """Fold a cumulative transcript list into the pending buffer"""
        result = session.process_transcript(request.entries)
        return {
            "newEntries": result.new_entries,
            "pendingWords": result.word_count,
            "analysisScheduled": session.timer.is_armed,
        }

    @app.post("/send-text")
    async def send_text(request: TextRequest):
        """Append one recognizer result to the server-side transcript feed"""
        if not request.text.strip():
            raise HTTPException(status_code=400, detail="Text cannot be empty")
        feed.add_entry(request.text, request.is_final)
        return {
            "status": "success",
            "entries": len(feed.entries),
            "pendingText": session.state.pending_text,
            "analysisScheduled": session.timer.is_armed,
        }

    @app.get("/graph")
    async def graph():
        return session.view().model_dump(by_alias=True)

    @app.get("/export")
    async def export_snapshot():
        return session.export_snapshot()

    @app.post("/import")
    async def import_snapshot(payload: Any = Body(...)):
        try:
            state = session.import_snapshot(payload)
        except ValidationFailure as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"status": "success", "topics": len(state.nodes), "transitions": len(state.edges)}

    @app.post("/reset")
    async def reset():
        session.reset()
        feed.clear()
        return {"status": "success"}

    @app.post("/save")
    async def save():
        result = await session.save()
        return {"ok": result.ok, "error": result.error, "savedAt": result.saved_at}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", **session.get_statistics()}

    @app.get("/stream-progress")
    async def stream_progress():
        """Server-Sent Events stream of graph changes"""

        async def event_generator():
            while True:
                event = await sse_event_queue.get()
                yield f"event: {event['event']}\ndata: {json.dumps(event['data'])}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering
            },
        )

    @app.post("/api/analyze-topic")
    async def analyze_topic(request: AnalyzeTopicRequest):
        """Topic oracle: classify conversation text against previous topics"""
        previous = [topic.model_dump() for topic in request.previous_topics]
        try:
            return await oracle.analyze(request.conversation_text, previous)
        except (TopicGraphError, ValueError) as e:
            logger.error(f"Error analyzing topic: {e}")
            return JSONResponse(status_code=500, content={"error": "Failed to analyze topic", "details": str(e)})

    return app


def main() -> None:
    import uvicorn

    config = get_config()
    setup_logging(config, 'topicgraph_server.log')

    # Allow port to be specified via environment variable or command line
    port = int(os.environ.get("TOPICGRAPH_PORT", 8001))
    if len(sys.argv) > 1:
        try:
            port = int(sys.argv[1])
        except ValueError:
            logger.warning(f"Ignoring invalid port argument '{sys.argv[1]}', using {port}")

    uvicorn.run(create_app(config=config), host="127.0.0.1", port=port)


if __name__ == "__main__":
    main()

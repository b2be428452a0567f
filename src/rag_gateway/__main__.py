from rag_gateway.api.main import run

run()

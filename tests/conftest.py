"""
Общие документы для тестов
"""

import copy

import pytest

SWAGGER2_DOC = {
    "swagger": "2.0",
    "info": {"title": "Shop API", "version": "1.0"},
    "basePath": "/api/",
    "tags": [{"name": "widget-controller", "description": "Widgets"}],
    "paths": {
        "/widgets/{id}": {
            "get": {
                "tags": ["widget-controller"],
                "summary": "Get widget",
                "operationId": "getWidgetUsingGET",
                "parameters": [
                    {"name": "id", "in": "path", "required": True, "type": "integer"}
                ],
                "responses": {
                    "200": {
                        "description": "OK",
                        "schema": {"$ref": "#/definitions/Result«Widget»"},
                    }
                },
            },
            "put": {
                "tags": ["widget-controller"],
                "summary": "Update widget",
                "operationId": "updateWidgetUsingPUT",
                "parameters": [
                    {"name": "id", "in": "path", "required": True, "type": "integer"},
                    {
                        "name": "widget",
                        "in": "body",
                        "required": True,
                        "schema": {"$ref": "#/definitions/Widget"},
                    },
                ],
                "responses": {"200": {"description": "OK"}},
            },
        },
        "/widgets": {
            "get": {
                "tags": ["widget-controller"],
                "summary": "List widgets",
                "operationId": "listWidgetsUsingGET",
                "parameters": [
                    {"name": "page.size", "in": "query", "type": "integer"},
                    {"name": "keyword", "in": "query", "type": "string"},
                ],
                "responses": {
                    "200": {
                        "description": "OK",
                        "schema": {
                            "$ref": "#/definitions/Result«PageResult«Widget»»"
                        },
                    }
                },
            }
        },
        "/ping": {
            "get": {
                "operationId": "pingUsingGET",
                "responses": {"200": {"description": "OK"}},
            }
        },
    },
    "definitions": {
        "Widget": {
            "type": "object",
            "description": "A widget",
            "properties": {
                "id": {"type": "integer", "format": "int64"},
                "name": {"type": "string"},
                "owner": {"$ref": "#/definitions/Owner"},
                "state": {"type": "string", "enum": ["ON", "OFF"]},
            },
        },
        "Owner": {
            "type": "object",
            "properties": {
                "login": {"type": "string"},
                "address": {"$ref": "#/definitions/Address"},
            },
        },
        "Address": {"type": "object", "properties": {"city": {"type": "string"}}},
        "Unused": {"type": "object", "properties": {"x": {"type": "string"}}},
        "Result«Widget»": {
            "type": "object",
            "properties": {
                "code": {"type": "integer"},
                "message": {"type": "string"},
                "data": {"$ref": "#/definitions/Widget"},
            },
        },
        "Result«PageResult«Widget»»": {
            "type": "object",
            "properties": {
                "code": {"type": "integer"},
                "message": {"type": "string"},
                "data": {"$ref": "#/definitions/PageResult«Widget»"},
            },
        },
        "PageResult«Widget»": {
            "type": "object",
            "properties": {
                "total": {"type": "integer"},
                "records": {
                    "type": "array",
                    "items": {"$ref": "#/definitions/Widget"},
                },
            },
        },
    },
}

OPENAPI3_DOC = {
    "openapi": "3.0.1",
    "info": {"title": "Gadget API", "version": "1.0"},
    "servers": [{"url": "https://example.com/v1/"}],
    "tags": [{"name": "gadget", "description": "Gadgets"}],
    "paths": {
        "/gadgets": {
            "parameters": [
                {"name": "tenant", "in": "query", "schema": {"type": "string"}}
            ],
            "post": {
                "tags": ["gadget"],
                "operationId": "createGadget",
                "requestBody": {
                    "required": True,
                    "content": {
                        "text/plain": {"schema": {"type": "string"}},
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/Gadget"}
                        },
                    },
                },
                "responses": {
                    "200": {
                        "description": "OK",
                        "content": {
                            "*/*": {"schema": {"$ref": "#/components/schemas/Gadget"}}
                        },
                    }
                },
            },
            "get": {
                "operationId": "listGadgets",
                "parameters": [{"$ref": "#/components/parameters/Limit"}],
                "responses": {
                    "200": {
                        "description": "OK",
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "array",
                                    "items": {"$ref": "#/components/schemas/Gadget"},
                                }
                            }
                        },
                    }
                },
            },
        },
        "/gadgets/{id}": {
            "delete": {
                "tags": ["gadgetController"],
                "operationId": "deleteGadget",
                "parameters": [
                    {"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}
                ],
                "responses": {"204": {"description": "No content", "content": {"*/*": {"schema": {}}}}},
            }
        },
    },
    "components": {
        "parameters": {
            "Limit": {"name": "limit", "in": "query", "schema": {"type": "integer"}}
        },
        "schemas": {
            "Gadget": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "parent": {
                        "anyOf": [
                            {"$ref": "#/components/schemas/Gadget"},
                            {"type": "null"},
                        ]
                    },
                    "size": {"anyOf": [{"type": "integer"}, {"type": "string"}]},
                    "labels": {"type": ["array", "null"], "items": {"type": "string"}},
                },
            }
        },
    },
}


@pytest.fixture
def swagger2_doc():
    return copy.deepcopy(SWAGGER2_DOC)


@pytest.fixture
def openapi3_doc():
    return copy.deepcopy(OPENAPI3_DOC)

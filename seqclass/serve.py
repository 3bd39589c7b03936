#!/usr/bin/env python3

"""
FastAPI app for the sequence classification pipeline.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from seqclass.errors import PipelineError
from seqclass.sequence_classification import SequenceClassificationModel

app = FastAPI(title="seqclass API", version="1.0.0")


@lru_cache(maxsize=1)
def get_model() -> SequenceClassificationModel:
    return SequenceClassificationModel()


class PredictRequest(BaseModel):
    texts: List[str] = Field(..., min_length=1, description="Texts to classify, in order.")


class MultilabelRequest(PredictRequest):
    threshold: float = Field(0.5, ge=0.0, description="Minimum sigmoid score for a label to be returned.")


class LabelOut(BaseModel):
    text: str
    score: float
    id: int
    sentence: int


class PredictResponse(BaseModel):
    labels: List[LabelOut]


class MultilabelResponse(BaseModel):
    labels: List[List[LabelOut]]


@app.get("/health")
def health(model: SequenceClassificationModel = Depends(get_model)) -> Dict[str, Any]:
    return {
        "status": "ok",
        "device": str(model.device),
        "model_type": model.model_type.value,
        "num_classes": len(model.label_mapping),
    }


@app.post("/predict", response_model=PredictResponse)
def predict(req: PredictRequest, model: SequenceClassificationModel = Depends(get_model)) -> PredictResponse:
    try:
        labels = model.predict(req.texts)
    except PipelineError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return PredictResponse(labels=[LabelOut(**label.to_dict()) for label in labels])


@app.post("/predict_multilabel", response_model=MultilabelResponse)
def predict_multilabel(
    req: MultilabelRequest,
    model: SequenceClassificationModel = Depends(get_model),
) -> MultilabelResponse:
    try:
        labels = model.predict_multilabel(req.texts, req.threshold)
    except PipelineError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return MultilabelResponse(
        labels=[[LabelOut(**label.to_dict()) for label in sentence] for sentence in labels]
    )

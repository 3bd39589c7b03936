#!/usr/bin/env python3


"""
Evaluation of a SequenceClassificationModel on a labeled text set.

- accuracy alone hides weak classes, so macro-F1 and a per-class report are printed too
- the most common confusions show which labels the classifier mixes up
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, classification_report, confusion_matrix, f1_score

from seqclass.config import EVAL_BATCH_SIZE, EVAL_CSV, LOG_LEVEL
from seqclass.sequence_classification import SequenceClassificationModel


def load_eval_frame(path: Union[str, Path]) -> pd.DataFrame:
    """
    Loads a CSV with 'text' and 'label' columns.

    'label' may hold label strings (e.g. POSITIVE) or integer class ids.
    """
    df = pd.read_csv(path)
    missing = {"text", "label"} - set(df.columns)
    if missing:
        raise ValueError(f"{path} is missing columns: {sorted(missing)}")
    return df.dropna(subset=["text", "label"]).reset_index(drop=True)


def to_label_ids(labels: Sequence, id_to_label: Mapping[int, str]) -> np.ndarray:
    """
    Maps gold labels to class ids; strings go through the model's label mapping.
    """
    label_to_id = {v: k for k, v in id_to_label.items()}
    ids = []
    for label in labels:
        if isinstance(label, str) and not label.isdigit():
            if label not in label_to_id:
                raise ValueError(f"Unknown label {label!r}; model labels are {sorted(label_to_id)}")
            ids.append(label_to_id[label])
        else:
            ids.append(int(label))
    return np.asarray(ids, dtype=np.int64)


def predict_ids(
    model: SequenceClassificationModel,
    texts: Sequence[str],
    batch_size: int = EVAL_BATCH_SIZE,
) -> np.ndarray:
    """
    Runs model.predict over texts in batches and returns predicted class ids.
    """
    all_preds: List[int] = []
    for start in range(0, len(texts), batch_size):
        batch = list(texts[start : start + batch_size])
        all_preds.extend(label.id for label in model.predict(batch))
    return np.asarray(all_preds, dtype=np.int64)


F1_AVERAGES = ("macro", "micro", "weighted")


def compute_metrics(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    labels: Optional[Sequence[int]] = None,
) -> Dict[str, float]:
    """
    Accuracy plus one F1 per averaging mode, keyed 'macro_f1', 'micro_f1', 'weighted_f1'.

    labels restricts the F1 averages to the given class ids (e.g. every id of the model's
    label mapping, so classes absent from a small eval set still count as 0).
    """
    metrics = {"accuracy": float(accuracy_score(y_true, y_pred))}
    for average in F1_AVERAGES:
        score = f1_score(y_true, y_pred, labels=labels, average=average, zero_division=0)
        metrics[f"{average}_f1"] = float(score)
    return metrics


def pretty_report(y_true: np.ndarray, y_pred: np.ndarray, id_to_label: Mapping[int, str]) -> str:
    # rows follow class id order, named by the model's labels
    ids, names = zip(*sorted(id_to_label.items()))
    report = classification_report(
        y_true,
        y_pred,
        labels=list(ids),
        target_names=list(names),
        digits=4,
        zero_division=0,
    )
    return f"{len(y_true)} examples, {len(ids)} classes\n\n{report}"


def top_confusions(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    id_to_label: Mapping[int, str],
    top_n: int = 10,
) -> List[Tuple[int, str, str]]:
    """
    Returns the most common (count, true label, predicted label) misclassification pairs.
    """
    labels_sorted = sorted(id_to_label.keys())
    cm = confusion_matrix(y_true, y_pred, labels=labels_sorted)
    np.fill_diagonal(cm, 0)

    pairs = []
    for i in range(cm.shape[0]):
        for j in range(cm.shape[1]):
            if cm[i, j] > 0:
                pairs.append((int(cm[i, j]), id_to_label[labels_sorted[i]], id_to_label[labels_sorted[j]]))

    pairs.sort(reverse=True, key=lambda x: x[0])
    return pairs[:top_n]


def evaluate(
    model: SequenceClassificationModel,
    texts: Sequence[str],
    labels: Sequence,
    batch_size: int = EVAL_BATCH_SIZE,
) -> Dict[str, float]:
    y_true = to_label_ids(labels, model.label_mapping)
    y_pred = predict_ids(model, texts, batch_size=batch_size)
    return compute_metrics(y_true, y_pred, labels=sorted(model.label_mapping))


def main():
    parser = argparse.ArgumentParser(description="Evaluate the default sentiment classifier on a labeled CSV.")
    parser.add_argument("csv", nargs="?", default=str(EVAL_CSV), help="CSV with 'text' and 'label' columns")
    parser.add_argument("--batch-size", type=int, default=EVAL_BATCH_SIZE)
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    df = load_eval_frame(args.csv)
    model = SequenceClassificationModel()
    id_to_label = model.label_mapping

    y_true = to_label_ids(df["label"].tolist(), id_to_label)
    y_pred = predict_ids(model, df["text"].astype(str).tolist(), batch_size=args.batch_size)

    metrics = compute_metrics(y_true, y_pred, labels=sorted(id_to_label))
    print("EVAL METRICS:", metrics)
    print("\nPER-CLASS REPORT:\n")
    print(pretty_report(y_true, y_pred, id_to_label))

    conf = top_confusions(y_true, y_pred, id_to_label, top_n=10)
    if conf:
        print("\nTOP CONFUSIONS (true → predicted):")
        for count, true_lbl, pred_lbl in conf:
            print(f"{count:4d} | {true_lbl} → {pred_lbl}")
    else:
        print("\nNo confusions on eval set.")


if __name__ == "__main__":
    main()
